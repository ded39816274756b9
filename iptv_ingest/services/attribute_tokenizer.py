"""
Attribute tokenizer shared by the M3U parser and the manifest rules.

Extracts key="value" and key=value pairs into an ordered, case-insensitive
mapping.
"""
import re
from collections.abc import Iterable, Iterator, Mapping, MutableMapping


ATTRIBUTE_PATTERN = re.compile(
    r'([A-Za-z0-9\-_]+)="([^"]*)"|([A-Za-z0-9\-_]+)=([^ "]+)'
)


class AttributeMap(MutableMapping[str, str]):
    """Ordered string mapping with case-insensitive keys.

    Keys keep the casing of their last write and the position of their
    first insertion.
    """

    __slots__ = ("_store",)

    def __init__(self, data: Mapping[str, str] | Iterable[tuple[str, str]] | None = None):
        self._store: dict[str, tuple[str, str]] = {}
        if data is not None:
            self.update(data)

    def __setitem__(self, key: str, value: str) -> None:
        self._store[key.casefold()] = (key, value)

    def __getitem__(self, key: str) -> str:
        return self._store[key.casefold()][1]

    def __delitem__(self, key: str) -> None:
        del self._store[key.casefold()]

    def __iter__(self) -> Iterator[str]:
        return (original for original, _ in self._store.values())

    def __len__(self) -> int:
        return len(self._store)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.casefold() in self._store

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Mapping):
            other_map = AttributeMap(other)
            return {k: v for k, (_, v) in self._store.items()} == {
                k: v for k, (_, v) in other_map._store.items()
            }
        return NotImplemented

    def __repr__(self) -> str:
        return f"AttributeMap({dict(self.items())!r})"

    def copy(self) -> "AttributeMap":
        return AttributeMap(self.items())


def tokenize_attributes(segment: str, into: AttributeMap | None = None) -> AttributeMap:
    """
    Extract attribute pairs from a text fragment.

    Args:
        segment: Text such as 'tvg-id="x" group-title="News"'
        into: Optional map to fill (a new one is created otherwise)

    Returns:
        The filled AttributeMap. On duplicate keys the last occurrence wins.
    """
    attributes = into if into is not None else AttributeMap()
    if not segment:
        return attributes

    for match in ATTRIBUTE_PATTERN.finditer(segment):
        if match.group(1) is not None:
            attributes[match.group(1)] = match.group(2)
        else:
            attributes[match.group(3)] = match.group(4)

    return attributes


__all__ = ["AttributeMap", "ATTRIBUTE_PATTERN", "tokenize_attributes"]
