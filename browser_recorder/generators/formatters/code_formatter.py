"""Whitespace, literal and comment formatting for generated tests."""

from ..models import Language

MAX_BLANK_RUN = 2

_ESCAPES = str.maketrans({"\\": "\\\\", "\n": "\\n", "\r": "\\r", "\t": "\\t"})


class CodeFormatter:
    """Language-aware helpers used while assembling generated files."""

    def __init__(self, language: Language):
        self.language = language

    @property
    def is_python(self) -> bool:
        return self.language == Language.PYTHON

    def format_code(self, code: str) -> str:
        """Normalize whitespace in a generated file.

        Trailing spaces and leading blank lines are dropped, runs of blank
        lines are capped at ``MAX_BLANK_RUN`` and the file ends with a
        single newline.
        """
        kept: list[str] = []
        run = 0
        for line in (raw.rstrip() for raw in code.split("\n")):
            if line:
                run = 0
            elif not kept:
                continue
            else:
                run += 1
                if run > MAX_BLANK_RUN:
                    continue
            kept.append(line)

        while kept and not kept[-1]:
            kept.pop()
        return "\n".join(kept) + "\n"

    def get_indent(self) -> str:
        return " " * (4 if self.is_python else 2)

    def indent_block(self, lines: list[str], levels: int = 1) -> list[str]:
        """Indent non-empty lines by ``levels`` indent steps."""
        prefix = self.get_indent() * levels
        return [prefix + line if line else line for line in lines]

    def format_string_literal(self, value: str, single_quotes: bool | None = None) -> str:
        """Quote ``value`` as a string literal.

        JavaScript and TypeScript prefer single quotes and Python double
        quotes. Without an explicit ``single_quotes`` the other style is
        chosen when only it avoids escaping.
        """
        if single_quotes is None:
            single_quotes = not self.is_python
            if single_quotes and "'" in value and '"' not in value:
                single_quotes = False
            elif not single_quotes and '"' in value and "'" not in value:
                single_quotes = True

        quote = "'" if single_quotes else '"'
        escaped = value.translate(_ESCAPES).replace(quote, "\\" + quote)
        return f"{quote}{escaped}{quote}"

    def format_comment(self, text: str, doc_comment: bool = False) -> str:
        """Render ``text`` as a single-line comment."""
        text = " ".join(text.split())
        if self.is_python:
            return f'"""{text}"""' if doc_comment else f"# {text}"
        return f"/** {text} */" if doc_comment else f"// {text}"

    def format_block_comment(self, lines: list[str], doc_comment: bool = False) -> str:
        if self.is_python:
            if doc_comment:
                return '"""\n' + "\n".join(lines) + '\n"""'
            return "\n".join(f"# {line}" for line in lines)

        opener = "/**" if doc_comment else "/*"
        return "\n".join([opener, *(f" * {line}" for line in lines), " */"])
