"""Font database shared by pipeline instances.

Faces are registered at initialization (bundled, from directories, from
memory) and then only read. The database keeps the raw font bytes and face
metadata; each pipeline builds its own fontTools / HarfBuzz objects from
them, so concurrent conversions never share mutable font state.
"""

from __future__ import annotations

import io
import logging
import os
import struct
import sys
import threading
from dataclasses import dataclass, field
from pathlib import Path

from fontTools.ttLib import TTCollection, TTFont, TTLibError

from svg_simplify.exceptions import FontResolutionError
from svg_simplify.tree import FaceInfo

logger = logging.getLogger(__name__)

GENERIC_FAMILIES = ("serif", "sans-serif", "cursive", "fantasy", "monospace")
DEFAULT_GENERIC_FAMILIES = {
    "serif": "Times New Roman",
    "sans-serif": "Arial",
    "cursive": "Comic Sans MS",
    "fantasy": "Impact",
    "monospace": "Courier New",
}
FONT_SUFFIXES = frozenset({".ttf", ".otf", ".ttc", ".otc"})

# OS/2 fsSelection bits
_FS_ITALIC = 1 << 0
_FS_OBLIQUE = 1 << 9
# head.macStyle bits
_MAC_ITALIC = 1 << 1


@dataclass(frozen=True)
class FaceRecord:
    """One registered face.

    Attributes:
        family: Preferred family name (typographic family if present).
        families: Every family name the face answers to, lower-cased.
        weight: OS/2 weight class.
        style: ``"normal"``, ``"italic"`` or ``"oblique"``.
        postscript_name: PostScript name, for display.
        source: File path or a label for in-memory data.
        index: Face index inside a collection.
        data: Raw font file bytes.
    """

    family: str
    families: tuple[str, ...]
    weight: int
    style: str
    postscript_name: str
    source: str
    index: int = 0
    data: bytes = field(default=b"", repr=False, compare=False)

    def info(self) -> FaceInfo:
        return FaceInfo(self.family, self.weight, self.style, self.source, self.index)


def _name(font: TTFont, ids: tuple[int, ...]) -> str | None:
    """First name record found for the given name ids, in id order."""
    table = font["name"]
    for name_id in ids:
        value = table.getDebugName(name_id)
        if value:
            return value.strip()
    return None


def _all_names(font: TTFont, ids: tuple[int, ...]) -> set[str]:
    names = set()
    for record in font["name"].names:
        if record.nameID in ids:
            try:
                names.add(record.toUnicode().strip().lower())
            except UnicodeDecodeError:
                continue
    return {name for name in names if name}


def _face_style(font: TTFont) -> str:
    if "OS/2" in font:
        selection = font["OS/2"].fsSelection
        if selection & _FS_OBLIQUE:
            return "oblique"
        if selection & _FS_ITALIC:
            return "italic"
        return "normal"
    if "head" in font and font["head"].macStyle & _MAC_ITALIC:
        return "italic"
    return "normal"


def _face_record(font: TTFont, data: bytes, source: str, index: int) -> FaceRecord:
    family = _name(font, (16, 1))
    if not family:
        raise FontResolutionError(f"{source}:{index} has no family name")
    weight = font["OS/2"].usWeightClass if "OS/2" in font else 400
    return FaceRecord(
        family=family,
        families=tuple(sorted(_all_names(font, (16, 1)) | {family.lower()})),
        weight=weight,
        style=_face_style(font),
        postscript_name=_name(font, (6,)) or "",
        source=source,
        index=index,
        data=data,
    )


def system_font_dirs() -> list[Path]:
    """Platform font directories that exist on this machine."""
    home = Path.home()
    if sys.platform == "darwin":
        dirs = [Path("/System/Library/Fonts"), Path("/Library/Fonts"), home / "Library/Fonts"]
    elif sys.platform.startswith("win"):
        windir = Path(os.environ.get("WINDIR", "C:/Windows"))
        dirs = [windir / "Fonts"]
        local = os.environ.get("LOCALAPPDATA")
        if local:
            dirs.append(Path(local) / "Microsoft/Windows/Fonts")
    else:
        dirs = [
            Path("/usr/share/fonts"),
            Path("/usr/local/share/fonts"),
            home / ".fonts",
            home / ".local/share/fonts",
        ]
    return [d for d in dirs if d.is_dir()]


class FontDatabase:
    """Registry of font faces queried by family, weight and style.

    Registration methods take a lock and are meant for initialization;
    queries read an immutable snapshot and are safe from many threads.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._faces: tuple[FaceRecord, ...] = ()
        self._generic = dict(DEFAULT_GENERIC_FAMILIES)

    def __len__(self) -> int:
        return len(self._faces)

    @property
    def faces(self) -> tuple[FaceRecord, ...]:
        return self._faces

    def families(self) -> list[str]:
        return sorted({face.family for face in self._faces}, key=str.lower)

    def load_font_data(self, data: bytes, source: str = "<memory>") -> int:
        """Register every face found in ``data``.

        Returns:
            Number of faces added.

        Raises:
            FontResolutionError: The data is not a readable font.
        """
        try:
            if data[:4] == b"ttcf":
                collection = TTCollection(io.BytesIO(data), lazy=True)
                fonts = list(collection.fonts)
            else:
                fonts = [TTFont(io.BytesIO(data), lazy=True)]
            records = [_face_record(font, data, source, index) for index, font in enumerate(fonts)]
        except (TTLibError, KeyError, struct.error, AssertionError) as e:
            raise FontResolutionError(f"cannot read font {source}: {e}") from e

        with self._lock:
            self._faces = self._faces + tuple(records)
        for record in records:
            logger.debug(
                "Registered %s w=%d s=%s from %s:%d",
                record.family,
                record.weight,
                record.style,
                source,
                record.index,
            )
        return len(records)

    def load_font_file(self, path: Path | str) -> int:
        path = Path(path)
        try:
            data = path.read_bytes()
        except OSError as e:
            raise FontResolutionError(f"cannot read font file {path}: {e}") from e
        return self.load_font_data(data, str(path))

    def load_fonts_dir(self, directory: Path | str) -> int:
        """Register all fonts below ``directory``; unreadable files are skipped."""
        directory = Path(directory).expanduser()
        if not directory.is_dir():
            logger.warning("Font directory does not exist: %s", directory)
            return 0
        count = 0
        for path in sorted(directory.rglob("*")):
            if path.suffix.lower() not in FONT_SUFFIXES or not path.is_file():
                continue
            try:
                count += self.load_font_file(path)
            except FontResolutionError as e:
                logger.warning("Skipping font: %s", e)
        return count

    def load_system_fonts(self) -> int:
        return sum(self.load_fonts_dir(directory) for directory in system_font_dirs())

    def set_generic_family(self, generic: str, family: str) -> None:
        if generic not in GENERIC_FAMILIES:
            raise ValueError(f"unknown generic family {generic!r}")
        with self._lock:
            self._generic[generic] = family

    def generic_family(self, generic: str) -> str | None:
        return self._generic.get(generic.lower())

    def query(self, family: str, weight: int = 400, style: str = "normal") -> FaceRecord | None:
        """Find the best face for one family name using CSS font matching.

        Generic family names map through the generic family table.
        """
        name = family.strip().lower()
        if name in GENERIC_FAMILIES:
            name = self._generic[name].lower()
        candidates = [face for face in self._faces if name in face.families]
        if not candidates:
            return None
        for wanted_style in _style_fallbacks(style):
            styled = [face for face in candidates if face.style == wanted_style]
            if styled:
                return _closest_weight(styled, weight)
        return _closest_weight(candidates, weight)


def _style_fallbacks(style: str) -> tuple[str, ...]:
    if style == "italic":
        return ("italic", "oblique", "normal")
    if style == "oblique":
        return ("oblique", "italic", "normal")
    return ("normal", "oblique", "italic")


def _closest_weight(faces: list[FaceRecord], weight: int) -> FaceRecord:
    """CSS Fonts weight matching among faces of a single style."""
    by_weight = {face.weight: face for face in reversed(faces)}
    if weight in by_weight:
        return by_weight[weight]
    lighter = sorted((w for w in by_weight if w < weight), reverse=True)
    heavier = sorted(w for w in by_weight if w > weight)
    if 400 <= weight <= 500:
        up_to_500 = [w for w in heavier if w <= 500]
        above_500 = [w for w in heavier if w > 500]
        order = up_to_500 + lighter + above_500
    elif weight < 400:
        order = lighter + heavier
    else:
        order = heavier + lighter
    return by_weight[order[0]]
