"""
Exact matcher for linking elements of model A to elements of model B.

Both element collections are keyed with the same extractor and joined on the
identity key:
1. Matched: key present on both sides
2. Only A: key present in model A only
3. Only B: key present in model B only

Elements whose key cannot be resolved are dropped from every bucket.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional

from stbdiff.matching.extractors import ElementData, ExtractionResult, NodeMap
from stbdiff.settings.enums import ImportanceLevel

logger = logging.getLogger(__name__)

KeyExtractorFn = Callable[[object, NodeMap], ExtractionResult]


@dataclass
class MatchedPair:
    """An element of model A and its counterpart in model B."""

    data_a: ElementData
    data_b: ElementData

    # Identity key both sides share (may differ for tolerance matches)
    match_key: Optional[str] = None

    # Set by the importance classifier
    importance: Optional[ImportanceLevel] = None

    @property
    def id_a(self) -> Optional[str]:
        return self.data_a.id

    @property
    def id_b(self) -> Optional[str]:
        return self.data_b.id

    @property
    def name(self) -> str:
        """Get a descriptive name."""
        return self.data_a.name or self.data_b.name or str(self.data_a.id)

    def swapped(self) -> "MatchedPair":
        """The same pair seen from model B."""
        return MatchedPair(self.data_b, self.data_a, self.match_key, self.importance)


@dataclass
class ComparisonResult:
    """Result of matching two element collections."""

    matched: list  # List of MatchedPair
    only_a: list  # List of ElementData present only in model A
    only_b: list  # List of ElementData present only in model B

    # Elements left out because their identity could not be resolved
    unresolved_a: int = 0
    unresolved_b: int = 0

    errors: list = field(default_factory=list)

    @property
    def total_a(self) -> int:
        """Resolved elements of model A."""
        return len(self.matched) + len(self.only_a)

    @property
    def total_b(self) -> int:
        """Resolved elements of model B."""
        return len(self.matched) + len(self.only_b)

    @property
    def total_differences(self) -> int:
        return len(self.only_a) + len(self.only_b)

    @property
    def match_rate(self) -> float:
        """Calculate the match rate as a percentage."""
        total = self.total_a + self.total_b
        if total == 0:
            return 0.0
        # Each match covers 2 items (one from each side)
        return (len(self.matched) * 2 / total) * 100

    def summary(self) -> dict:
        """Get a summary of the match results."""
        return {
            "total_a": self.total_a,
            "total_b": self.total_b,
            "matched": len(self.matched),
            "only_a": len(self.only_a),
            "only_b": len(self.only_b),
            "unresolved_a": self.unresolved_a,
            "unresolved_b": self.unresolved_b,
            "match_rate": f"{self.match_rate:.1f}%"
        }


class Matcher:
    """Matches two element collections on exact identity keys."""

    def match(
        self,
        elements_a: Iterable,
        elements_b: Iterable,
        node_map_a: NodeMap,
        node_map_b: NodeMap,
        extractor: KeyExtractorFn
    ) -> ComparisonResult:
        """
        Classify elements into matched, only A and only B.

        A single left-to-right hash join: every key of model A is looked up in
        model B's map and removed from it when found; whatever is left in
        model B afterwards is only B. If one side has several elements with
        the same key, the last one wins.

        Args:
            elements_a: Element records of model A
            elements_b: Element records of model B
            node_map_a: Node id -> coordinate map of model A
            node_map_b: Node id -> coordinate map of model B
            extractor: Callable returning an ExtractionResult per element

        Returns:
            ComparisonResult with matched pairs and unmatched items
        """
        keys_a, unresolved_a = self._index(elements_a, node_map_a, extractor, "A")
        keys_b, unresolved_b = self._index(elements_b, node_map_b, extractor, "B")

        matched = []
        only_a = []

        for key, data_a in keys_a.items():
            data_b = keys_b.pop(key, None)
            if data_b is not None:
                matched.append(MatchedPair(data_a=data_a, data_b=data_b, match_key=key))
            else:
                only_a.append(data_a)

        only_b = list(keys_b.values())

        return ComparisonResult(
            matched=matched,
            only_a=only_a,
            only_b=only_b,
            unresolved_a=unresolved_a,
            unresolved_b=unresolved_b,
        )

    def _index(
        self,
        elements: Iterable,
        node_map: NodeMap,
        extractor: KeyExtractorFn,
        side: str
    ) -> tuple[dict, int]:
        """Build the key -> data map of one side and count unresolved elements."""
        index: dict[str, ElementData] = {}
        unresolved = 0

        for element in elements:
            result = extractor(element, node_map)
            if result.key is None:
                unresolved += 1
                continue
            if result.key in index:
                logger.debug(
                    "Model %s: element %s replaces %s under key %s",
                    side, result.data.id, index[result.key].id, result.key
                )
            index[result.key] = result.data

        return index, unresolved

    def get_ids(self, result: ComparisonResult) -> dict:
        """Element ids per bucket, handy for logs and assertions."""
        return {
            "matched": [(pair.id_a, pair.id_b) for pair in result.matched],
            "only_a": [data.id for data in result.only_a],
            "only_b": [data.id for data in result.only_b],
        }


def match_elements(elements_a, elements_b, node_map_a, node_map_b, extractor) -> ComparisonResult:
    """Run the exact matcher once; see Matcher.match."""
    return Matcher().match(elements_a, elements_b, node_map_a, node_map_b, extractor)
