"""Data model for the customer / device / date selection."""

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class Selection:
    """A complete hierarchical selection.

    Attributes:
        level1: Customer folder
        level2: Device (camera) folder
        level3: Date folder
    """
    level1: str
    level2: str
    level3: str

    def as_tuple(self) -> Tuple[str, str, str]:
        return (self.level1, self.level2, self.level3)

    def prefix(self, base_folder: str = "") -> str:
        """Build the storage prefix for this selection.

        Args:
            base_folder: Optional folder all customers live under

        Returns:
            Prefix ending in "/", e.g. "feeds/acme/cam-1/2025-03-17/"
        """
        parts = [base_folder.strip("/")] if base_folder.strip("/") else []
        parts.extend(part.strip("/") for part in self.as_tuple())
        return "/".join(parts) + "/"

    def __str__(self) -> str:
        return "/".join(self.as_tuple())
