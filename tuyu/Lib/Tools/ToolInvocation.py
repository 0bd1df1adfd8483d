from dataclasses import dataclass, field
from typing import List


@dataclass
class ToolInvocation:
    """
    One external tool call. Built per request, handed to the supervisor and
    dropped once the process has exited.
    """

    tool_identifier: str
    arguments: List[str] = field(default_factory=list)
    success_message: str = ""
    failure_message: str = ""
