"""
Streaming NEXUS reader.

The reader splits a character stream into ``;`` terminated statements (ignoring
semicolons inside ``[...]`` comments and single quoted labels) without loading
the whole file, so posterior samples of any size can be walked one tree at a
time.
"""

from typing import Dict, Iterable, Iterator, List, NamedTuple, Optional, Tuple

from cladeannotator.exceptions import TreeImportError
from cladeannotator.parser.newick_parser import split_top_level


class NexusStatement(NamedTuple):
    """A single NEXUS command: lower-cased keyword plus the remaining text."""

    keyword: str
    body: str


def _iter_raw_statements(lines: Iterable[str]) -> Iterator[str]:
    buffer: List[str] = []
    comment_depth = 0
    in_quote = False

    for line in lines:
        for char in line:
            if comment_depth:
                buffer.append(char)
                if char == "[":
                    comment_depth += 1
                elif char == "]":
                    comment_depth -= 1
            elif in_quote:
                buffer.append(char)
                if char == "'":
                    in_quote = False
            elif char == "[":
                comment_depth = 1
                buffer.append(char)
            elif char == "'":
                in_quote = True
                buffer.append(char)
            elif char == ";":
                statement = "".join(buffer).strip()
                buffer.clear()
                if statement:
                    yield statement
            else:
                buffer.append(char)

    if comment_depth or in_quote:
        raise TreeImportError("Unterminated comment or quote at end of file")
    trailing = "".join(buffer).strip()
    if trailing:
        yield trailing


def _skip_header(lines: Iterable[str]) -> Iterator[str]:
    header_seen = False
    for line in lines:
        if not header_seen and line.strip():
            header_seen = True
            if line.strip().upper() == "#NEXUS":
                continue
        yield line


def iter_nexus_statements(lines: Iterable[str]) -> Iterator[NexusStatement]:
    """
    Yield the statements of a NEXUS stream.

    Args:
        lines: Iterable of text lines (an open file works)

    Yields:
        NexusStatement with the first word lower-cased as keyword
    """
    for statement in _iter_raw_statements(_skip_header(lines)):
        # Statement level comments ahead of the keyword carry no data
        text = strip_tree_comments(statement)
        if not text:
            continue
        parts = text.split(None, 1)
        keyword = parts[0].lower()
        body = parts[1] if len(parts) > 1 else ""
        yield NexusStatement(keyword, body)


def iter_newick_strings(lines: Iterable[str]) -> Iterator[str]:
    """Yield every ``;`` terminated tree of a plain Newick stream."""
    for statement in _iter_raw_statements(lines):
        yield statement + ";"


def strip_tree_comments(text: str) -> str:
    """Remove leading bracketed comments such as ``[&R]`` or ``[&U]``."""
    text = text.strip()
    while text.startswith("["):
        end = text.find("]")
        if end < 0:
            raise TreeImportError(f"Unterminated comment in '{text[:40]}'")
        text = text[end + 1 :].strip()
    return text


def _unquote(label: str) -> str:
    label = label.strip()
    if len(label) >= 2 and label[0] == label[-1] == "'":
        return label[1:-1].replace("''", "'")
    if len(label) >= 2 and label[0] == label[-1] == '"':
        return label[1:-1]
    return label


def parse_translate(body: str) -> Dict[str, str]:
    """
    Parse the body of a ``translate`` command.

    Example:
        ``1 Homo_sapiens, 2 'Pan troglodytes'`` ->
        ``{"1": "Homo_sapiens", "2": "Pan troglodytes"}``
    """
    table: Dict[str, str] = {}
    for entry in split_top_level(body):
        parts = entry.strip().split(None, 1)
        if len(parts) != 2:
            raise TreeImportError(f"Malformed translate entry '{entry.strip()}'")
        table[parts[0]] = _unquote(parts[1])
    return table


def _split_tree_statement(body: str) -> Tuple[str, str]:
    depth = 0
    for index, char in enumerate(body):
        if char == "[":
            depth += 1
        elif char == "]":
            depth -= 1
        elif char == "=" and depth == 0:
            name = body[:index]
            # Drop comments attached to the tree name, e.g. "STATE_0 [&lnP=-10]"
            bracket = name.find("[")
            if bracket >= 0:
                name = name[:bracket]
            return _unquote(name), strip_tree_comments(body[index + 1 :])
    raise TreeImportError(f"Malformed tree statement 'tree {body[:40]}'")


def iter_nexus_trees(
    lines: Iterable[str],
) -> Iterator[Tuple[str, str, Optional[Dict[str, str]]]]:
    """
    Yield the trees of a NEXUS stream.

    Only ``tree``/``utree`` commands inside a ``trees`` block are returned; the
    translate table of that block is passed along with every tree.

    Yields:
        Tuples of (tree name, Newick string, translate table or None)
    """
    block: Optional[str] = None
    translate: Optional[Dict[str, str]] = None

    for statement in iter_nexus_statements(lines):
        if statement.keyword == "begin":
            block = statement.body.strip().lower()
            if block == "trees":
                translate = None
        elif statement.keyword in ("end", "endblock"):
            block = None
        elif block != "trees":
            continue
        elif statement.keyword == "translate":
            translate = parse_translate(statement.body)
        elif statement.keyword in ("tree", "utree"):
            name, newick = _split_tree_statement(statement.body)
            yield name, newick + ";", translate
