"""Styled text for prompt segments.

A segment is a small immutable tree: one Leaf holding literal text, wrapped in
any number of attribute/color nodes. Rendering walks the tree outside-in and
emits ANSI SGR codes, optionally passing each code through an escaper so the
shell's line editor treats it as zero-width.

    leaf("main").bold().foreground(Color.GREEN).render()
    -> "\\033[32m\\033[1mmain\\033[22m\\033[39m"
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Union

logger = logging.getLogger(__name__)

ESC = "\033"

# ---------------------------------------------------------------------------
# Colors
# ---------------------------------------------------------------------------


class Color(Enum):
    """Named terminal colors as (foreground, background) SGR parameters."""

    BLACK = (30, 40)
    RED = (31, 41)
    GREEN = (32, 42)
    YELLOW = (33, 43)
    BLUE = (34, 44)
    MAGENTA = (35, 45)
    CYAN = (36, 46)
    WHITE = (37, 47)
    BRIGHT_BLACK = (90, 100)
    BRIGHT_RED = (91, 101)
    BRIGHT_GREEN = (92, 102)
    BRIGHT_YELLOW = (93, 103)
    BRIGHT_BLUE = (94, 104)
    BRIGHT_MAGENTA = (95, 105)
    BRIGHT_CYAN = (96, 106)
    BRIGHT_WHITE = (97, 107)

    @property
    def fg(self) -> str:
        return str(self.value[0])

    @property
    def bg(self) -> str:
        return str(self.value[1])


@dataclass(frozen=True)
class Fixed:
    """Entry of the 256-color palette."""

    index: int

    def __post_init__(self):
        if not 0 <= self.index <= 255:
            raise ValueError(f"palette index out of range: {self.index}")

    @property
    def fg(self) -> str:
        return f"38;5;{self.index}"

    @property
    def bg(self) -> str:
        return f"48;5;{self.index}"


_HEX_RE = re.compile(r"[0-9a-fA-F]{6}")


@dataclass(frozen=True)
class Rgb:
    """24-bit true color."""

    r: int
    g: int
    b: int

    def __post_init__(self):
        for component in (self.r, self.g, self.b):
            if not 0 <= component <= 255:
                raise ValueError(f"RGB component out of range: {component}")

    @property
    def fg(self) -> str:
        return f"38;2;{self.r};{self.g};{self.b}"

    @property
    def bg(self) -> str:
        return f"48;2;{self.r};{self.g};{self.b}"

    @classmethod
    def from_hex(cls, value: str) -> "Rgb":
        """Parse "#rrggbb" or "rrggbb".

        Malformed input yields white instead of an error: a bad color in the
        environment must never cost the user their prompt.
        """
        digits = value[1:] if value.startswith("#") else value
        # int(..., 16) alone would accept signs, spaces and underscores
        if not _HEX_RE.fullmatch(digits):
            logger.debug("Malformed hex color %r, using white", value)
            return cls(255, 255, 255)
        return cls(int(digits[0:2], 16), int(digits[2:4], 16), int(digits[4:6], 16))


ColorSpec = Union[Color, Fixed, Rgb]


def hex_color(value: str) -> Rgb:
    """Shorthand for Rgb.from_hex()."""
    return Rgb.from_hex(value)


# ---------------------------------------------------------------------------
# Style tree
# ---------------------------------------------------------------------------

Escape = Callable[[str], str]


def sgr(params: str) -> str:
    """Build a Select Graphic Rendition sequence, e.g. sgr("1") -> ESC[1m."""
    return f"{ESC}[{params}m"


class _Builder:
    """Fluent wrappers shared by every node. Each call returns a new tree."""

    def bold(self) -> "Bold":
        return Bold(self)

    def italic(self) -> "Italic":
        return Italic(self)

    def underline(self) -> "Underline":
        return Underline(self)

    def foreground(self, color: ColorSpec) -> "Foreground":
        return Foreground(self, color)

    def background(self, color: ColorSpec) -> "Background":
        return Background(self, color)

    def render(self, escape: Escape | None = None) -> str:
        return render(self, escape)

    def plain(self) -> str:
        """Leaf text without any styling."""
        node = self
        while not isinstance(node, Leaf):
            node = node.child
        return node.text

    def __str__(self) -> str:
        return render(self)


@dataclass(frozen=True)
class Leaf(_Builder):
    text: str


@dataclass(frozen=True)
class Bold(_Builder):
    child: "StyleTree"


@dataclass(frozen=True)
class Italic(_Builder):
    child: "StyleTree"


@dataclass(frozen=True)
class Underline(_Builder):
    child: "StyleTree"


@dataclass(frozen=True)
class Foreground(_Builder):
    child: "StyleTree"
    color: ColorSpec


@dataclass(frozen=True)
class Background(_Builder):
    child: "StyleTree"
    color: ColorSpec


StyleTree = Union[Leaf, Bold, Italic, Underline, Foreground, Background]


def leaf(text: str) -> Leaf:
    return Leaf(text)


def paint(text: str, color: ColorSpec, bold: bool = True) -> StyleTree:
    """The usual segment look: bold text in one foreground color."""
    tree = leaf(text)
    if bold:
        tree = tree.bold()
    return tree.foreground(color)


def codes(node: StyleTree) -> tuple[str, str]:
    """Return the (start, end) escape sequences a wrapper node emits."""
    if isinstance(node, Bold):
        return sgr("1"), sgr("22")
    if isinstance(node, Italic):
        return sgr("3"), sgr("23")
    if isinstance(node, Underline):
        return sgr("4"), sgr("24")
    if isinstance(node, Foreground):
        return sgr(node.color.fg), sgr("39")
    if isinstance(node, Background):
        return sgr(node.color.bg), sgr("49")
    raise TypeError(f"not a wrapper node: {node!r}")


def render(tree: StyleTree, escape: Escape | None = None) -> str:
    """Render a tree to text with ANSI codes.

    Each wrapper contributes escape(start) before its child and escape(end)
    after it, so codes nest outside-in. Leaf text is emitted verbatim.
    """
    if isinstance(tree, Leaf):
        return tree.text
    start, end = codes(tree)
    if escape is not None:
        start, end = escape(start), escape(end)
    return f"{start}{render(tree.child, escape)}{end}"


# ---------------------------------------------------------------------------
# Shell escaping
# ---------------------------------------------------------------------------


class Shell(Enum):
    """Consumers of the rendered line and how they mark zero-width bytes."""

    RAW = "raw"
    BASH = "bash"
    ZSH = "zsh"
    READLINE = "readline"

    @classmethod
    def parse(cls, name: str) -> "Shell":
        try:
            return cls(name.strip().lower())
        except ValueError:
            valid = ", ".join(s.value for s in cls)
            raise ValueError(f"unknown shell {name!r} (expected one of: {valid})") from None


_INVISIBLE = {
    Shell.BASH: ("\\[", "\\]"),
    Shell.ZSH: ("%{", "%}"),
    Shell.READLINE: ("\001", "\002"),
}


def escaper_for(shell: Shell) -> Escape | None:
    """Return the escaper for *shell*, or None when codes pass through raw."""
    if shell is Shell.RAW:
        return None
    open_mark, close_mark = _INVISIBLE[shell]
    return lambda code: f"{open_mark}{code}{close_mark}"
