"""Service for loading the vocabulary catalog."""
import json
import logging
from pathlib import Path
from typing import List, Optional, Union

from vocadrill.config import settings
from vocadrill.models.vocabulary_models import VocabularyItem

logger = logging.getLogger(__name__)


class VocabularyService:
    """Read-only catalog of vocabulary items."""

    def __init__(self, items: List[VocabularyItem]):
        seen = set()
        for item in items:
            if item.id in seen:
                raise ValueError(f"Duplicate vocabulary id: {item.id}")
            seen.add(item.id)
        self.items = list(items)

    @classmethod
    def from_file(cls, path: Optional[Union[str, Path]] = None) -> "VocabularyService":
        """Load the catalog from a JSON file containing a list of items."""
        path = Path(path or settings.paths.catalog_file)
        with path.open(encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, list):
            raise ValueError(f"Catalog {path} must contain a list of items")

        items = []
        for index, entry in enumerate(data):
            try:
                items.append(VocabularyItem.from_dict(entry))
            except (KeyError, TypeError) as e:
                raise ValueError(f"Malformed catalog entry #{index} in {path}: {e}") from e
        logger.info(f"Loaded {len(items)} vocabulary items from {path}")
        return cls(items)

    def get_categories(self) -> List[str]:
        """Get the sorted set of category labels."""
        return sorted({item.category for item in self.items if item.category})

    def get_base_vocabulary(self) -> List[VocabularyItem]:
        """Get every item in the catalog."""
        return list(self.items)
