"""
Incremental structured-object extractor.

Called with the whole accumulated text after every chunk. Each call returns
only the objects completed since the previous calls, in the order their
closing delimiters appeared. Two dedup keys apply: a fingerprint of the raw
fragment, then the object's identity (``tag-<tag>`` / ``name-<name>``).
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Iterable, Iterator, Optional

from copilot.core.models.extraction import ExtractedObject, ObjectKind
from copilot.domain.extraction.shapes import SHAPES, match_shape

logger = logging.getLogger(__name__)


def find_balanced_end(text: str, start: int) -> Optional[int]:
    """Index just past the ``}`` closing the object opened at ``start``.

    Braces inside JSON strings are ignored. Returns None while the object is
    still open at the end of the text.
    """
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i + 1
    return None


class IncrementalExtractor:
    """Finds complete fragments in a growing buffer and emits each at most once.

    Args:
        kinds: Object kinds to recognize, tried in order
        fence_language: Language tag of fenced blocks (```json)
        fingerprint_length: Prefix length of the stripped fragment used as fingerprint
    """

    def __init__(
        self,
        kinds: Iterable[ObjectKind] = (ObjectKind.INTENT, ObjectKind.AGENT),
        fence_language: str = "json",
        fingerprint_length: int = 100,
    ):
        self.kinds = tuple(kinds)
        self.fence_language = fence_language
        self.fingerprint_length = fingerprint_length
        self._fence_open = f"```{fence_language}"
        self._fence_re = re.compile(r"```" + re.escape(fence_language) + r"\s*([\s\S]*?)```")
        self._key_patterns = [SHAPES[kind].key_pattern for kind in self.kinds]
        self._seen_fingerprints: set[str] = set()
        self._seen_identities: set[str] = set()

    @property
    def seen_count(self) -> int:
        """Number of fragments scanned so far (accepted or not)."""
        return len(self._seen_fingerprints)

    def reset(self) -> None:
        """Forget everything seen; the next call treats the text as new."""
        self._seen_fingerprints.clear()
        self._seen_identities.clear()

    def extract(self, full_text: str) -> list[ExtractedObject]:
        """Return objects completed in ``full_text`` that were not returned before."""
        if self._fence_open in full_text:
            candidates = self._fenced_candidates(full_text)
        else:
            candidates = self._bare_candidates(full_text)

        extracted = []
        for source, raw, data in candidates:
            obj = self._accept(source, raw, data)
            if obj is not None:
                extracted.append(obj)
        return extracted

    def _fingerprint(self, source: str, raw: str) -> str:
        return f"{source}-{raw.strip()[:self.fingerprint_length]}"

    def _fenced_candidates(self, text: str) -> Iterator[tuple[str, str, Any]]:
        for match in self._fence_re.finditer(text):
            raw = match.group(1).strip()
            fingerprint = self._fingerprint("json", raw)
            if fingerprint in self._seen_fingerprints:
                continue
            self._seen_fingerprints.add(fingerprint)
            try:
                data = json.loads(raw)
            except json.JSONDecodeError as e:
                logger.debug(f"Skipping malformed fenced block: {e}")
                continue
            # A block may hold a list of objects
            items = data if isinstance(data, list) else [data]
            for item in items:
                yield "json", raw, item

    def _bare_candidates(self, text: str) -> Iterator[tuple[str, str, Any]]:
        pos = 0
        while True:
            start = text.find("{", pos)
            if start == -1:
                return
            end = find_balanced_end(text, start)
            if end is None:
                # Stray brace in prose, or still streaming; later objects may be complete
                pos = start + 1
                continue
            raw = text[start:end]
            if not any(p.match(raw) for p in self._key_patterns):
                pos = start + 1
                continue

            fingerprint = self._fingerprint("raw", raw)
            if fingerprint in self._seen_fingerprints:
                pos = end
                continue
            self._seen_fingerprints.add(fingerprint)
            try:
                data = json.loads(raw)
            except json.JSONDecodeError as e:
                logger.debug(f"Skipping malformed bare fragment: {e}")
                pos = end
                continue
            if match_shape(data, self.kinds) is None:
                # Possibly a wrapper around the real objects; look inside it
                pos = start + 1
                continue
            yield "raw", raw, data
            pos = end

    def _accept(self, source: str, raw: str, data: Any) -> Optional[ExtractedObject]:
        matched = match_shape(data, self.kinds)
        if matched is None:
            logger.debug(f"Discarding {source} fragment without a recognized shape")
            return None
        shape, payload = matched
        identity_key = shape.identity_key(payload)
        if identity_key in self._seen_identities:
            logger.debug(f"Skipping re-emitted {identity_key}")
            return None
        self._seen_identities.add(identity_key)
        return ExtractedObject(
            fingerprint=self._fingerprint(source, raw),
            identity_key=identity_key,
            kind=shape.kind,
            payload=payload,
            raw=raw,
        )
