# File: entigen/source.py
"""
EntiGen - Source Model
=======================
Parses the text of one entity class file into an ordered, mutable list of
member nodes, and serializes it back.

Supported grammar (deliberately narrow)::

    <header: open tag, declare, namespace, use imports, class attributes>
    class Name [extends ...] [implements ...]
    {
        <member>*
    }
    <footer>

    member := trivia* ( property ";" | const/use/case ";" | method )
    trivia := doc comment | line comment | "#[" attribute "]"

Each member keeps its original text (dedented), so hand-written code,
comments and attribute arguments survive a parse/serialize round trip
untouched.  Only blank lines are re-decided, by ``entigen.formatting``.

Structural operations (``insert_property``, ``remove_method``, ...) edit the
node list only.  Formatting happens once, in ``serialize``.
"""

from __future__ import annotations

import logging
import re
import textwrap
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Set, Tuple, Union

from entigen.errors import StructuralParseError
from entigen.formatting import normalize_members, normalize_whitespace
from entigen.registries import RELATION_ATTRIBUTES

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("entigen.source")

# ---------------------------------------------------------------------------
# Pre-compiled regex patterns (matched against masked text)
# ---------------------------------------------------------------------------

_CLASS_RE: re.Pattern[str] = re.compile(
    r"(?<![\w$:>\\])(?:(?:final|abstract|readonly)\s+)*class\s+([A-Za-z_]\w*)\b[^{;]*\{"
)
_METHOD_RE: re.Pattern[str] = re.compile(
    r"^\s*(?:(?:public|protected|private|static|abstract|final)\s+)*"
    r"function\s+&?\s*([A-Za-z_]\w*)\s*\("
)
_PROPERTY_RE: re.Pattern[str] = re.compile(
    r"^\s*(?:(?:public|protected|private|var|static|readonly)(?:\(set\))?\s+)+"
    r"(?:[^\s$=;]+\s+)?\$([A-Za-z_]\w*)"
)
_OPAQUE_RE: re.Pattern[str] = re.compile(
    r"^\s*(?:(?:public|protected|private|final)\s+)*(?:const|use|case)\b"
)
_ASSIGNMENT_RE: re.Pattern[str] = re.compile(
    r"\$this\s*->\s*([A-Za-z_]\w*)\s*=(?![=>])"
)
_ATTRIBUTE_NAME_RE: re.Pattern[str] = re.compile(r"^\s*\\?([A-Za-z_][\w\\]*)")
_HEREDOC_RE: re.Pattern[str] = re.compile(r"<<<[ \t]*(['\"]?)([A-Za-z_]\w*)\1\r?\n")

CONSTRUCTOR: str = "__construct"

_OPENERS: str = "([{"
_CLOSERS: str = ")]}"


# ---------------------------------------------------------------------------
# Masking: blank out comments and string contents, keep offsets/newlines
# ---------------------------------------------------------------------------


def _line_of(text: str, index: int) -> int:
    return text.count("\n", 0, index) + 1


def _blank(chars: List[str], start: int, end: int) -> None:
    for k in range(start, end):
        if chars[k] != "\n":
            chars[k] = " "


def mask_source(text: str) -> str:
    """
    Return *text* with comment bodies and string literal contents replaced
    by spaces.  Offsets and newlines are preserved, so brace matching and
    regex searches on the result map 1:1 onto the original.
    """
    chars: List[str] = list(text)
    n: int = len(text)
    i: int = 0
    while i < n:
        c: str = text[i]
        if c in ("'", '"'):
            j: int = i + 1
            while j < n and text[j] != c:
                if text[j] == "\\":
                    j += 1
                j += 1
            if j >= n:
                raise StructuralParseError(
                    "Unterminated string literal.", line=_line_of(text, i)
                )
            _blank(chars, i + 1, j)
            i = j + 1
        elif text.startswith("/*", i):
            j = text.find("*/", i + 2)
            if j < 0:
                raise StructuralParseError(
                    "Unterminated block comment.", line=_line_of(text, i)
                )
            _blank(chars, i, j + 2)
            i = j + 2
        elif text.startswith("//", i) or (c == "#" and not text.startswith("#[", i)):
            j = text.find("\n", i)
            if j < 0:
                j = n
            _blank(chars, i, j)
            i = j
        elif text.startswith("<<<", i):
            match = _HEREDOC_RE.match(text, i)
            if match is None:
                i += 3
                continue
            closing = re.compile(r"^[ \t]*" + match.group(2) + r"\b", re.MULTILINE)
            end_match = closing.search(text, match.end())
            if end_match is None:
                raise StructuralParseError(
                    "Unterminated heredoc.", line=_line_of(text, i)
                )
            _blank(chars, match.end(), end_match.start())
            i = end_match.end()
        else:
            i += 1
    return "".join(chars)


def _match_brace(masked: str, open_index: int) -> int:
    """Index of the ``}`` matching the ``{`` at *open_index*, or -1."""
    depth: int = 0
    for k in range(open_index, len(masked)):
        c: str = masked[k]
        if c == "{":
            depth += 1
        elif c == "}":
            depth -= 1
            if depth == 0:
                return k
    return -1


def _scan_member(masked: str, start: int) -> Optional[Tuple[int, int, int]]:
    """
    Find the end of the member beginning at *start*.

    Returns ``(end, brace_open, brace_close)`` where *end* is one past the
    terminating ``;`` or ``}``, and the brace positions are those of the
    first top-level ``{ ... }`` block (``-1`` when the member has none).
    ``None`` means the text ran out before a terminator.
    """
    stack: List[str] = []
    brace_open: int = -1
    for k in range(start, len(masked)):
        c: str = masked[k]
        if c in _OPENERS:
            if c == "{" and not stack and brace_open < 0:
                brace_open = k
            stack.append(c)
        elif c in _CLOSERS:
            if not stack:
                return None
            opener: str = stack.pop()
            if _OPENERS.index(opener) != _CLOSERS.index(c):
                return None
            if c == "}" and not stack and opener == "{" and k > brace_open >= 0:
                return k + 1, brace_open, k
        elif c == ";" and not stack:
            return k + 1, -1, -1
    return None


def _strip_attributes(masked: str) -> Tuple[str, List[str]]:
    """Remove ``#[...]`` groups from masked member text; return their names."""
    names: List[str] = []
    out: List[str] = []
    i: int = 0
    n: int = len(masked)
    while i < n:
        if masked.startswith("#[", i):
            depth: int = 0
            j: int = i + 1
            while j < n:
                if masked[j] == "[":
                    depth += 1
                elif masked[j] == "]":
                    depth -= 1
                    if depth == 0:
                        break
                j += 1
            names.extend(_attribute_names(masked[i + 2:j]))
            out.append(" " * (j + 1 - i))
            i = j + 1
        else:
            out.append(masked[i])
            i += 1
    return "".join(out), names


def _attribute_names(group: str) -> List[str]:
    """Leading class names of each attribute in one ``#[A(...), B]`` group."""
    names: List[str] = []
    depth: int = 0
    current: List[str] = []
    for c in group + ",":
        if c in _OPENERS:
            depth += 1
        elif c in _CLOSERS:
            depth -= 1
        if c == "," and depth == 0:
            match = _ATTRIBUTE_NAME_RE.match("".join(current))
            if match:
                names.append(match.group(1).rsplit("\\", 1)[-1])
            current = []
        else:
            current.append(c)
    return names


# ---------------------------------------------------------------------------
# Nodes
# ---------------------------------------------------------------------------


def _indent_lines(text: str, indent: str) -> List[str]:
    return [indent + line if line.strip() else "" for line in text.split("\n")]


@dataclass(slots=True)
class BlankLine:
    """Blank-line marker between members."""

    def render(self, indent: str) -> List[str]:
        return [""]


@dataclass(slots=True)
class PropertyNode:
    """A property declaration with its doc comment and attributes."""

    name: str
    text: str
    attributes: List[str] = field(default_factory=list)

    @property
    def is_field(self) -> bool:
        return "Field" in self.attributes

    @property
    def is_relation(self) -> bool:
        return any(a in RELATION_ATTRIBUTES for a in self.attributes)

    def render(self, indent: str) -> List[str]:
        return _indent_lines(self.text, indent)


@dataclass(slots=True)
class MethodNode:
    """
    A method, split around its body braces so statements can be appended.

    ``head`` ends with the opening ``{``; ``tail`` starts with the closing
    ``}``.  Abstract methods have ``body is None`` and keep everything in
    ``head``.
    """

    name: str
    head: str
    body: Optional[str] = None
    tail: str = ""

    @property
    def is_constructor(self) -> bool:
        return self.name.lower() == CONSTRUCTOR

    @property
    def text(self) -> str:
        if self.body is None:
            return self.head
        return f"{self.head}{self.body}{self.tail}"

    def assigned_properties(self) -> Set[str]:
        """Names of ``$this->x = ...`` targets in the body."""
        if not self.body:
            return set()
        return set(_ASSIGNMENT_RE.findall(mask_source(self.body)))

    def append_statement(self, statement: str, indent: str) -> None:
        """Append one statement at the end of the body."""
        if self.body is None:
            raise StructuralParseError(
                f"Cannot add statements to abstract method '{self.name}'."
            )
        existing: str = self.body.rstrip()
        if not existing.strip():
            self.body = f"\n{indent}{statement}\n"
        else:
            self.body = f"{existing}\n{indent}{statement}\n"

    def remove_statement(self, statement: str) -> bool:
        """Drop body lines consisting of exactly *statement*."""
        if not self.body:
            return False
        lines: List[str] = self.body.split("\n")
        kept: List[str] = [ln for ln in lines if ln.strip() != statement]
        if len(kept) == len(lines):
            return False
        self.body = "\n".join(kept)
        return True

    def render(self, indent: str) -> List[str]:
        return _indent_lines(self.text, indent)


@dataclass(slots=True)
class OpaqueNode:
    """A member kept verbatim: constants, trait uses, enum cases, comments."""

    text: str

    def render(self, indent: str) -> List[str]:
        return _indent_lines(self.text, indent)


Node = Union[BlankLine, PropertyNode, MethodNode, OpaqueNode]
Member = Union[PropertyNode, MethodNode, OpaqueNode]


def _is_blank(node: Node) -> bool:
    return isinstance(node, BlankLine)


# ---------------------------------------------------------------------------
# Member parsing
# ---------------------------------------------------------------------------


def _build_member(raw: str, line: int) -> Member:
    """Classify one dedented member and wrap it in the matching node type."""
    masked: str = mask_source(raw)
    stripped, attributes = _strip_attributes(masked)
    scanned = _scan_member(masked, 0)

    method_match = _METHOD_RE.match(stripped)
    if method_match is not None:
        name: str = method_match.group(1)
        if scanned is None:
            raise StructuralParseError(f"Unterminated method '{name}'.", line=line)
        _end, brace_open, brace_close = scanned
        if brace_open < 0:
            return MethodNode(name=name, head=raw)
        return MethodNode(
            name=name,
            head=raw[: brace_open + 1],
            body=raw[brace_open + 1: brace_close],
            tail=raw[brace_close:],
        )

    property_match = _PROPERTY_RE.match(stripped)
    if property_match is not None:
        return PropertyNode(
            name=property_match.group(1), text=raw, attributes=attributes
        )

    if _OPAQUE_RE.match(stripped) or not stripped.strip():
        return OpaqueNode(text=raw)

    first_line: str = stripped.strip().split("\n", 1)[0]
    raise StructuralParseError(
        f"Unsupported class member: '{first_line[:60]}'.", line=line
    )


def _iter_members(
    text: str,
    masked: str,
    start: int,
    end: int,
    line_offset: int = 0,
) -> Iterator[Node]:
    """Yield members (and blank markers) for ``text[start:end]``."""
    i: int = start
    emitted: bool = False
    while i < end:
        # Whitespace run before the next member
        j: int = i
        while j < end and text[j] in " \t\r\n":
            j += 1
        if j >= end:
            return
        if emitted and text.count("\n", i, j) >= 2:
            yield BlankLine()

        line_start: int = text.rfind("\n", start, j) + 1
        if line_start < start:
            line_start = start
        prefix: str = text[line_start:j]
        if prefix.strip():
            prefix = ""
        line: int = line_offset + _line_of(text, j)

        scanned = _scan_member(masked[:end], j)
        if scanned is None:
            remainder: str = masked[j:end]
            if remainder.strip():
                raise StructuralParseError(
                    "Class member is not terminated by ';' or '}'.", line=line
                )
            # Trailing comments before the closing brace
            member_end: int = end
            while member_end > j and text[member_end - 1] in " \t\r\n":
                member_end -= 1
        else:
            member_end = scanned[0]
            # Keep a same-line trailing comment with its member
            eol: int = text.find("\n", member_end, end)
            if eol < 0:
                eol = end
            if text[member_end:eol].strip() and not masked[member_end:eol].strip():
                member_end = eol

        raw: str = textwrap.dedent(prefix + text[j:member_end]).strip("\n")
        yield _build_member(raw.rstrip(), line)
        emitted = True
        i = member_end


def parse_members(snippet: str) -> List[Member]:
    """Parse member declarations outside of a class (used for generated code)."""
    masked: str = mask_source(snippet)
    return [
        node for node in _iter_members(snippet, masked, 0, len(snippet))
        if not isinstance(node, BlankLine)
    ]


def parse_member(snippet: str) -> Member:
    """Parse exactly one member declaration."""
    members: List[Member] = parse_members(snippet)
    if len(members) != 1:
        raise StructuralParseError(
            f"Expected exactly one class member, found {len(members)}."
        )
    return members[0]


# ---------------------------------------------------------------------------
# ClassSource
# ---------------------------------------------------------------------------


class ClassSource:
    """
    Ordered, mutable member list of exactly one class.

    ``prefix`` is everything up to and including the class ``{``;
    ``suffix`` is everything from the closing ``}`` to the end of file.
    """

    __slots__ = ("class_name", "prefix", "nodes", "suffix", "indent", "path")

    def __init__(
        self,
        class_name: str,
        prefix: str,
        nodes: List[Node],
        suffix: str,
        indent: str = "    ",
        path: Optional[str] = None,
    ) -> None:
        self.class_name: str = class_name
        self.prefix: str = prefix
        self.nodes: List[Node] = nodes
        self.suffix: str = suffix
        self.indent: str = indent
        self.path: Optional[str] = path

    # -----------------------------------------------------------------
    # Parsing
    # -----------------------------------------------------------------

    @classmethod
    def parse(cls, text: str, path: Optional[str] = None) -> "ClassSource":
        """
        Build the node list for the single class in *text*.

        Raises:
            StructuralParseError: no class, several classes, unbalanced
                braces/strings/comments or an unsupported member.
        """
        try:
            masked: str = mask_source(text)
            matches = list(_CLASS_RE.finditer(masked))
            if not matches:
                raise StructuralParseError("No class declaration found.")
            if len(matches) > 1:
                raise StructuralParseError(
                    f"Expected a single class, found {len(matches)}.",
                    line=_line_of(text, matches[1].start()),
                )

            match = matches[0]
            open_index: int = match.end() - 1
            close_index: int = _match_brace(masked, open_index)
            if close_index < 0:
                raise StructuralParseError(
                    f"Unbalanced braces in class '{match.group(1)}'.",
                    line=_line_of(text, open_index),
                )
            if masked[close_index + 1:].strip():
                raise StructuralParseError(
                    "Unexpected code after the class body.",
                    line=_line_of(text, close_index + 1),
                )

            nodes: List[Node] = list(
                _iter_members(text, masked, open_index + 1, close_index)
            )
        except StructuralParseError as exc:
            if path is None:
                raise
            raise StructuralParseError(
                exc.reason, line=exc.line, path=path
            ) from exc

        indent: str = _detect_indent(text, open_index + 1, close_index)
        source = cls(
            class_name=match.group(1),
            prefix=text[: open_index + 1],
            nodes=nodes,
            suffix=text[close_index:],
            indent=indent,
            path=path,
        )
        logger.debug(
            "Parsed class %s: %d properties, %d methods.",
            source.class_name,
            len(source.properties()),
            len(source.methods()),
        )
        return source

    # -----------------------------------------------------------------
    # Queries
    # -----------------------------------------------------------------

    def members(self) -> List[Member]:
        return [n for n in self.nodes if not isinstance(n, BlankLine)]

    def properties(self) -> List[PropertyNode]:
        return [n for n in self.nodes if isinstance(n, PropertyNode)]

    def methods(self) -> List[MethodNode]:
        return [n for n in self.nodes if isinstance(n, MethodNode)]

    def fields(self) -> List[str]:
        """Names of properties carrying a ``#[Field]`` attribute."""
        return [p.name for p in self.properties() if p.is_field]

    def relations(self) -> List[str]:
        """Names of properties carrying a relation attribute."""
        return [p.name for p in self.properties() if p.is_relation]

    def find_property(self, name: str) -> Optional[PropertyNode]:
        for node in self.nodes:
            if isinstance(node, PropertyNode) and node.name == name:
                return node
        return None

    def find_method(self, name: str) -> Optional[MethodNode]:
        lowered: str = name.lower()
        for node in self.nodes:
            if isinstance(node, MethodNode) and node.name.lower() == lowered:
                return node
        return None

    # -----------------------------------------------------------------
    # Structural edits
    # -----------------------------------------------------------------

    def remove_property(self, name: str) -> bool:
        """Drop the property node only; accessors are the caller's concern."""
        before: int = len(self.nodes)
        self.nodes = [
            n for n in self.nodes
            if not (isinstance(n, PropertyNode) and n.name == name)
        ]
        return len(self.nodes) != before

    def remove_method(self, name: str) -> bool:
        lowered: str = name.lower()
        before: int = len(self.nodes)
        self.nodes = [
            n for n in self.nodes
            if not (isinstance(n, MethodNode) and n.name.lower() == lowered)
        ]
        return len(self.nodes) != before

    def replace_member(self, old: Member, new: Member) -> None:
        """Put *new* at the position of *old* (matched by identity)."""
        for i, node in enumerate(self.nodes):
            if node is old:
                self.nodes[i] = new
                return
        raise ValueError(f"{old!r} is not a member of {self.class_name}.")

    def _property_insertion_point(self) -> int:
        last: int = -1
        for i, node in enumerate(self.nodes):
            if isinstance(node, MethodNode):
                break
            if isinstance(node, (PropertyNode, OpaqueNode)):
                last = i
        return last + 1

    def insert_property(self, node: PropertyNode) -> None:
        """
        Insert after the last property, before the first method.  A blank
        marker precedes the node when it follows another property.
        """
        nodes: List[Node] = self.nodes
        index: int = self._property_insertion_point()

        if index > 0 and _is_blank(nodes[index - 1]):
            del nodes[index - 1]
            index -= 1
        if index < len(nodes) and _is_blank(nodes[index]):
            del nodes[index]

        if index > 0 and isinstance(nodes[index - 1], PropertyNode):
            nodes.insert(index, BlankLine())
            index += 1

        nodes.insert(index, node)
        index += 1

        if index >= len(nodes) or not _is_blank(nodes[index]):
            nodes.insert(index, BlankLine())

    def insert_method(self, node: MethodNode) -> None:
        """Append after the last method (the constructor when it is alone)."""
        last: int = -1
        for i, existing in enumerate(self.nodes):
            if isinstance(existing, MethodNode):
                last = i
        index: int = last + 1 if last >= 0 else len(self.nodes)
        self.nodes.insert(index, node)

    def find_or_create_constructor(self) -> MethodNode:
        """Existing ``__construct`` or a new empty one before the first method."""
        existing: Optional[MethodNode] = self.find_method(CONSTRUCTOR)
        if existing is not None:
            return existing

        ctor = MethodNode(
            name=CONSTRUCTOR,
            head=f"public function {CONSTRUCTOR}()\n{{",
            body="\n",
            tail="}",
        )
        for i, node in enumerate(self.nodes):
            if isinstance(node, MethodNode):
                self.nodes.insert(i, ctor)
                break
        else:
            self.nodes.append(ctor)
        logger.debug("Synthesised constructor in %s.", self.class_name)
        return ctor

    # -----------------------------------------------------------------
    # Serialization
    # -----------------------------------------------------------------

    def render(self) -> str:
        """Render nodes as-is, without the formatting pass."""
        lines: List[str] = []
        for node in self.nodes:
            lines.extend(node.render(self.indent))
        body: str = "\n".join(lines)
        if body:
            body = f"\n{body}\n"
        else:
            body = "\n"
        return f"{self.prefix}{body}{self.suffix}"

    def serialize(self) -> str:
        """Render with normalised member spacing and file whitespace."""
        self.nodes = normalize_members(self.nodes, BlankLine(), _is_blank)
        return normalize_whitespace(self.render())

    def __repr__(self) -> str:
        return (
            f"<ClassSource {self.class_name}: {len(self.properties())} "
            f"properties, {len(self.methods())} methods>"
        )


def _detect_indent(text: str, start: int, end: int) -> str:
    """Indentation of the first member line, four spaces by default."""
    for line in text[start:end].split("\n"):
        if line.strip():
            width: int = len(line) - len(line.lstrip(" \t"))
            if width:
                return line[:width]
            break
    return "    "


def parse_source(text: str, path: Optional[str] = None) -> ClassSource:
    """Module-level shortcut for ``ClassSource.parse``."""
    return ClassSource.parse(text, path=path)


__all__: List[str] = [
    "BlankLine",
    "PropertyNode",
    "MethodNode",
    "OpaqueNode",
    "Node",
    "Member",
    "ClassSource",
    "CONSTRUCTOR",
    "mask_source",
    "parse_source",
    "parse_member",
    "parse_members",
]
