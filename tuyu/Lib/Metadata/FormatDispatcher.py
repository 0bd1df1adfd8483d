from pathlib import Path
from typing import Optional, Union

from tuyu.Lib.Exceptions import FormatUnrecognized
from tuyu.Lib.Metadata.APKExtractor import APKExtractor
from tuyu.Lib.Metadata.DirectoryExtractor import DirectoryExtractor
from tuyu.Lib.Metadata.PackageMetadata import PackageMetadata
from tuyu.Lib.Metadata.XAPKExtractor import XAPKExtractor


class FormatDispatcher:
    """Routes a path to the extractor for its format."""

    def __init__(
        self,
        apk_extractor: Optional[APKExtractor] = None,
        xapk_extractor: Optional[XAPKExtractor] = None,
        directory_extractor: Optional[DirectoryExtractor] = None,
    ):
        self.apk_extractor = apk_extractor or APKExtractor()
        self.xapk_extractor = xapk_extractor or XAPKExtractor()
        self.directory_extractor = directory_extractor or DirectoryExtractor()

    def detect_and_extract(self, path: Union[str, Path]) -> Optional[PackageMetadata]:
        """
        Directories go to the directory extractor (None when they are not a
        decompiled project); files must be .apk or .xapk, anything else raises
        FormatUnrecognized.
        """
        path = Path(path)
        if path.is_dir():
            return self.directory_extractor.extract(path)

        suffix = path.suffix.lower()
        if suffix == ".apk":
            return self.apk_extractor.extract(path)
        if suffix == ".xapk":
            return self.xapk_extractor.extract(path)
        raise FormatUnrecognized(path)
