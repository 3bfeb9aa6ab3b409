"""Lightweight structural view of a Java source file.

This is not a parser. Comments are blanked out, string literal contents are
masked in a second copy of the text, and method bodies are recovered by
brace matching. Both copies keep the original offsets and line breaks, so a
match in one can be looked up in the other.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from functools import cached_property
from pathlib import Path

_NOT_METHOD_NAMES = {
    "if", "for", "while", "switch", "catch", "synchronized", "return", "new",
    "throw", "try", "else", "do", "super", "this", "assert",
}
_NOT_RETURN_TYPES = {"return", "new", "throw", "else", "case", "yield", "assert"}
_MODIFIERS = {
    "public", "protected", "private", "static", "final", "abstract",
    "synchronized", "native", "default", "strictfp",
}

_CALL_SITE = re.compile(r"\b([A-Za-z_$][\w$]*)\s*\(")
_PRECEDING_TYPE = re.compile(r"([\w$.]+(?:\s*<[^;{}()]*>)?(?:\s*\[\s*\])*)\s*$")
_BODY_OPENER = re.compile(r"\s*(?:throws\s+[\w$.,\s]+?)?\s*\{")
_EXTENDS = re.compile(r"\bclass\s+[\w$]+(?:\s*<[^{]*?>)?\s+extends\s+([\w$.]+)")
_STRING_CONSTANT = re.compile(
    r"\bstatic\s+final\s+String\s+([\w$]+)\s*=\s*\"((?:[^\"\\\n]|\\.)*)\""
)
_RETURN_LITERAL = re.compile(r"\breturn\s+\"((?:[^\"\\\n]|\\.)*)\"\s*;")
_RETURN_NAME = re.compile(r"\breturn\s+([\w$.]+)\s*;")
_FIELD_DECL = re.compile(
    r"\s*(?:@[\w$.]+(?:\s*\([^)]*\))?\s*)*"
    r"(?:(?:public|protected|private|static|final|transient|volatile)\s+)*"
    r"([\w$.]+(?:\s*<[^;=]*>)?(?:\s*\[\s*\])*)\s+([\w$]+)\s*[;=]"
)
_LOOP = re.compile(r"\b(?:for|while)\s*\(")


@dataclass(frozen=True)
class Method:
    name: str
    return_type: str
    params: str
    body: str
    line: int

    @property
    def bare(self) -> str:
        """Body with string literal contents masked."""
        return mask(self.body)[1]


@dataclass(frozen=True)
class AnnotatedField:
    name: str
    type: str
    arguments: str
    line: int


def mask(text: str) -> tuple[str, str]:
    """Return (code, bare) copies of text.

    code has comments blanked; bare additionally blanks the contents of
    string and character literals (the quotes stay). Newlines survive.
    """
    code = list(text)
    bare = list(text)
    i, n = 0, len(text)
    while i < n:
        ch = text[i]
        nxt = text[i + 1] if i + 1 < n else ""
        if ch == "/" and nxt == "/":
            end = text.find("\n", i)
            end = n if end == -1 else end
            _blank(code, i, end)
            _blank(bare, i, end)
            i = end
        elif ch == "/" and nxt == "*":
            end = text.find("*/", i + 2)
            end = n if end == -1 else end + 2
            _blank(code, i, end)
            _blank(bare, i, end)
            i = end
        elif text.startswith('"""', i):
            end = text.find('"""', i + 3)
            end = n if end == -1 else end
            _blank(bare, i + 3, end)
            i = min(end + 3, n)
        elif ch in "\"'":
            j = i + 1
            while j < n and text[j] != ch and text[j] != "\n":
                j += 2 if text[j] == "\\" else 1
            end = min(j, n)
            _blank(bare, i + 1, end)
            i = end + 1
        else:
            i += 1
    return "".join(code), "".join(bare)


def _blank(chars: list[str], start: int, end: int) -> None:
    for k in range(start, end):
        if chars[k] != "\n":
            chars[k] = " "


def _match_close(text: str, open_at: int, opener: str, closer: str) -> int | None:
    depth = 0
    for k in range(open_at, len(text)):
        c = text[k]
        if c == opener:
            depth += 1
        elif c == closer:
            depth -= 1
            if depth == 0:
                return k
    return None


@dataclass(frozen=True)
class JavaSource:
    path: Path
    text: str
    code: str = field(init=False, repr=False, compare=False)
    bare: str = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        code, bare = mask(self.text)
        object.__setattr__(self, "code", code)
        object.__setattr__(self, "bare", bare)

    @classmethod
    def read(cls, path: Path) -> JavaSource:
        return cls(path, path.read_text(encoding="utf-8", errors="replace"))

    @property
    def name(self) -> str:
        return self.path.name

    def line_of(self, offset: int) -> int:
        return self.text.count("\n", 0, offset) + 1

    # --- identifier and text lookups ---

    def mentions(self, *identifiers: str) -> bool:
        """True if any identifier appears as a whole word in code (not strings/comments)."""
        return any(re.search(rf"(?<![\w$]){re.escape(i)}(?![\w$])", self.bare) for i in identifiers)

    def contains(self, *needles: str) -> bool:
        """Substring search over code including string literals, excluding comments."""
        return any(n in self.code for n in needles)

    def search(self, pattern: str, flags: int = 0) -> re.Match | None:
        return re.search(pattern, self.code, flags)

    def calls(self, name: str, qualified: bool = False) -> list[int]:
        """Line numbers of call sites of name(...), excluding its declarations.

        With qualified=True only receiver calls (``x.name(``) count.
        """
        declared = {m.line for m in self.methods if m.name == name}
        lines: list[int] = []
        pattern = rf"(?<![\w$]){re.escape(name)}\s*\("
        for m in re.finditer(pattern, self.bare):
            before = self.bare[:m.start()].rstrip()
            if qualified and not before.endswith("."):
                continue
            line = self.line_of(m.start())
            if line in declared and not before.endswith("."):
                continue
            lines.append(line)
        return lines

    def has_call(self, name: str, qualified: bool = False) -> bool:
        return bool(self.calls(name, qualified=qualified))

    # --- structure ---

    @cached_property
    def superclass(self) -> str | None:
        m = _EXTENDS.search(self.bare)
        if m is None:
            return None
        return m.group(1).rsplit(".", 1)[-1]

    @cached_property
    def string_constants(self) -> dict[str, str]:
        return {m.group(1): m.group(2) for m in _STRING_CONSTANT.finditer(self.code)}

    @cached_property
    def methods(self) -> tuple[Method, ...]:
        found: list[Method] = []
        for m in _CALL_SITE.finditer(self.bare):
            name = m.group(1)
            if name in _NOT_METHOD_NAMES:
                continue
            return_type = self._declared_type_before(m.start())
            if return_type is None:
                continue
            close = _match_close(self.bare, m.end() - 1, "(", ")")
            if close is None:
                continue
            opener = _BODY_OPENER.match(self.bare, close + 1)
            if opener is None:
                continue
            brace = opener.end() - 1
            end = _match_close(self.bare, brace, "{", "}")
            if end is None:
                end = len(self.bare)
            found.append(Method(
                name=name,
                return_type=return_type,
                params=self.code[m.end():close],
                body=self.code[brace + 1:end],
                line=self.line_of(m.start()),
            ))
        return tuple(found)

    def _declared_type_before(self, offset: int) -> str | None:
        stripped = self.bare[max(0, offset - 400):offset].rstrip()
        if not stripped or not (stripped[-1].isalnum() or stripped[-1] in "_$>]"):
            return None
        m = _PRECEDING_TYPE.search(stripped)
        if m is None:
            return None
        token = m.group(1)
        if token in _NOT_RETURN_TYPES:
            return None
        # constructors: the word before the name is a modifier
        return "" if token in _MODIFIERS else token

    def method(self, name: str, return_type: str | None = None) -> Method | None:
        for m in self.methods:
            if m.name != name:
                continue
            if return_type is not None and return_type not in m.return_type:
                continue
            return m
        return None

    def declares(self, name: str, return_type: str | None = None) -> bool:
        return self.method(name, return_type) is not None

    def returned_string(self, method_name: str) -> str | None:
        """Resolve a string literal returned by method_name, following one constant."""
        m = self.method(method_name)
        if m is None:
            return None
        literal = _RETURN_LITERAL.search(m.body)
        if literal:
            return literal.group(1)
        named = _RETURN_NAME.search(m.body)
        if named:
            return self.string_constants.get(named.group(1).rsplit(".", 1)[-1])
        return None

    def annotations(self, annotation: str) -> list[tuple[str, int, int]]:
        """(arguments, start offset, end offset) for each use of @annotation."""
        uses: list[tuple[str, int, int]] = []
        pattern = rf"@{re.escape(annotation)}(?![\w$.])"
        for m in re.finditer(pattern, self.bare):
            end = m.end()
            arguments = ""
            paren = re.compile(r"\s*\(").match(self.bare, end)
            if paren:
                open_at = paren.end() - 1
                close = _match_close(self.bare, open_at, "(", ")")
                if close is None:
                    continue
                arguments = self.code[open_at + 1:close]
                end = close + 1
            uses.append((arguments, m.start(), end))
        return uses

    def annotated_fields(self, annotation: str) -> list[AnnotatedField]:
        fields: list[AnnotatedField] = []
        for arguments, start, end in self.annotations(annotation):
            decl = _FIELD_DECL.match(self.bare, end)
            if decl is None:
                continue
            fields.append(AnnotatedField(
                name=decl.group(2),
                type=decl.group(1),
                arguments=arguments,
                line=self.line_of(start),
            ))
        return fields

    def loop_count(self) -> int:
        return len(_LOOP.findall(self.bare))
