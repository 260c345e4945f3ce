import math

from typing import Optional, Union, List, Dict, Tuple, Any
from cladeannotator.tree import Node
from cladeannotator.exceptions import TreeImportError


# Comment flags that describe the whole tree rather than a node
_TREE_FLAGS = {"R", "U"}


# ===================================================================
# 1. METADATA PROCESSING FUNCTIONS
# ===================================================================


def split_top_level(text: str, separator: str = ",") -> List[str]:
    """
    Split a string on a separator, ignoring separators nested in braces or quotes.

    Args:
        text: String such as ``rate=1.0,loc={1.5,2.5},state="A,B"``
        separator: Single character to split on

    Returns:
        List of the top-level pieces (empty pieces are dropped)
    """
    pieces: List[str] = []
    buffer: List[str] = []
    depth = 0
    quote: Optional[str] = None

    for char in text:
        if quote is not None:
            buffer.append(char)
            if char == quote:
                quote = None
        elif char in "\"'":
            quote = char
            buffer.append(char)
        elif char == "{":
            depth += 1
            buffer.append(char)
        elif char == "}":
            depth -= 1
            buffer.append(char)
        elif char == separator and depth == 0:
            pieces.append("".join(buffer))
            buffer.clear()
        else:
            buffer.append(char)
    pieces.append("".join(buffer))
    return [piece for piece in pieces if piece.strip()]


def parse_attribute_value(text: str) -> Any:
    """
    Convert the textual value of a node attribute into a Python value.

    ``{a,b}`` becomes a list (recursively parsed), quoted text loses its quotes,
    ``true``/``false`` become booleans and numbers become int or float.
    Anything else is kept as a string.
    """
    text = text.strip()
    if text.startswith("{") and text.endswith("}"):
        return [parse_attribute_value(item) for item in split_top_level(text[1:-1])]
    if len(text) >= 2 and text[0] == text[-1] and text[0] in "\"'":
        return text[1:-1]
    lowered = text.lower()
    if lowered in ("true", "false"):
        return lowered == "true"
    try:
        return int(text)
    except ValueError:
        pass
    try:
        return float(text)
    except ValueError:
        return text


def split_token(token: str) -> Tuple[str, Any]:
    """
    Split a token into name and value parts.
    Handles both "name=value" and "name:value" formats for metadata.

    Args:
        token: A string token in format "name=value" or "name:value"

    Returns:
        Tuple of (name, parsed_value); a bare name maps to True
    """
    if "=" in token:
        name, value = token.split("=", 1)
    elif ":" in token:
        name, value = token.split(":", 1)
    else:
        return token.strip(), True
    return name.strip(), parse_attribute_value(value)


def parse_metadata(data: str) -> Dict[str, Any]:
    """
    Parse the content of a bracketed comment into a dictionary.

    Handles BEAST style ``&key=value,key={a,b}`` comments and NHX
    ``&&NHX:key=value:key=value`` comments. Comments that do not start with
    ``&`` are plain comments and yield an empty dictionary.

    Args:
        data: Comment content without the surrounding brackets

    Returns:
        Dictionary mapping keys to their parsed values
    """
    data = data.strip()
    if data.startswith("&&NHX:"):
        tokens = data[6:].split(":")
        return dict(split_token(token.replace(":", "=")) for token in tokens if "=" in token)
    if not data.startswith("&"):
        return {}

    metadata: Dict[str, Any] = {}
    for token in split_top_level(data[1:]):
        token = token.strip()
        if "=" not in token and token in _TREE_FLAGS:
            continue
        name, value = split_token(token) if "=" in token else (token, True)
        metadata[name] = value
    return metadata


def flush_meta_buffer(meta_buffer: List[str], stack: List[Node]) -> None:
    """
    Process the metadata buffer and update the current node's attributes.

    Args:
        meta_buffer: List of characters that form the comment content
        stack: The current stack of nodes being processed

    Returns:
        None - modifies the stack and meta_buffer in place
    """
    metadata = parse_metadata("".join(meta_buffer))
    if metadata and stack:
        stack[-1].values.update(metadata)
    meta_buffer.clear()


# ===================================================================
# 2. BUFFER PROCESSING FUNCTIONS
# ===================================================================


def flush_character_buffer(buffer: List[str], stack: List[Node]) -> None:
    """
    Process the character buffer and assign the name to the current node.

    Args:
        buffer: List of characters to join and assign as node name
        stack: The current stack of nodes being processed
    """
    if not stack:
        buffer.clear()
        return

    if buffer:
        stack[-1].name = "".join(buffer).strip()
    buffer.clear()


def flush_length_buffer(buffer: List[str], stack: List[Node]) -> None:
    """
    Process the length buffer and assign the branch length to the current node.

    Args:
        buffer: List of characters to join and parse as branch length
        stack: The current stack of nodes being processed

    Raises:
        TreeImportError: If the buffer content cannot be parsed as a float
    """
    if not stack:
        buffer.clear()
        return

    buffer_value = "".join(buffer).strip()

    # Null-like tokens leave the branch length unset
    null_like = {"", "null", "NULL", "none", "None"}
    if buffer_value in null_like:
        buffer.clear()
        return

    try:
        parsed_number = float(buffer_value)
    except ValueError:
        raise TreeImportError(f"Failed to parse branch length '{buffer_value}'")
    if math.isnan(parsed_number):
        raise TreeImportError(f"Branch length is not a number: '{buffer_value}'")
    stack[-1].length = parsed_number
    buffer.clear()


def flush_buffer(buffer: List[str], stack: List[Node], mode: str) -> None:
    """
    Process the accumulated buffer based on the current parsing mode.

    Args:
        buffer: List of characters accumulated during parsing
        stack: The current stack of nodes being processed
        mode: Current parsing mode ("character_reader" or "length_reader")
    """
    if mode == "character_reader":
        flush_character_buffer(buffer, stack)
    elif mode == "length_reader":
        flush_length_buffer(buffer, stack)


# ===================================================================
# 3. NODE STACK MANAGEMENT FUNCTIONS
# ===================================================================


def init_nodestack() -> List[Node]:
    """
    Initialize the node stack with the root node.

    Returns:
        List containing a single root node
    """
    return [Node(name="")]


def create_new_node(stack: List[Node], default_length: Optional[float]) -> List[Node]:
    """
    Create a new node as the last child of the node on top of the stack.

    Args:
        stack: The current stack of nodes being processed
        default_length: Branch length used until an explicit one is read

    Returns:
        The stack with the new node pushed on top
    """
    parent = stack[-1]
    new_node = Node(length=default_length)
    parent.children.append(new_node)
    new_node.parent = parent
    stack.append(new_node)
    return stack


def close_node(stack: List[Node]) -> List[Node]:
    """
    Close the current node by removing it from the stack.
    """
    stack.pop()
    return stack


# ===================================================================
# 4. CORE PARSING FUNCTIONS
# ===================================================================


def _parse_newick(tokens: str, default_length: Optional[float]) -> List[Node]:
    """
    Return a list of top-level Node trees from the token string.

    This is the low-level parsing function that processes character by character.
    An opening parenthesis opens the first child of the current node, a comma
    closes the current node and opens its next sibling, and a closing
    parenthesis returns to the parent.

    Args:
        tokens: Raw Newick format string
        default_length: Branch length for nodes without explicit lengths

    Returns:
        List of parsed Node trees

    Raises:
        TreeImportError: On unbalanced parentheses or unterminated quotes/comments
    """
    trees: List[Node] = []
    buffer: List[str] = []
    meta_buffer: List[str] = []
    mode: str = "character_reader"
    mode_before_comment: str = mode
    node_stack: List[Node] = init_nodestack()
    depth = 0

    index = 0
    n_tokens = len(tokens)
    while index < n_tokens:
        char = tokens[index]

        if mode == "quoted_reader":
            if char == "'":
                # Two single quotes inside a quoted label stand for one quote
                if index + 1 < n_tokens and tokens[index + 1] == "'":
                    buffer.append("'")
                    index += 1
                else:
                    mode = "character_reader"
            else:
                buffer.append(char)

        elif mode == "metadata_reader":
            if char == "]":
                flush_meta_buffer(meta_buffer, node_stack)
                mode = mode_before_comment
            else:
                meta_buffer.append(char)

        elif char in "\n\r\t":
            pass

        elif char == "[":
            mode_before_comment = mode
            mode = "metadata_reader"

        elif char == "'" and mode == "character_reader":
            mode = "quoted_reader"

        elif char == "(":
            if not node_stack:
                node_stack = init_nodestack()
            depth += 1
            node_stack = create_new_node(node_stack, default_length)
            mode = "character_reader"

        elif char == ")":
            flush_buffer(buffer, node_stack, mode)
            depth -= 1
            if depth < 0 or len(node_stack) <= 1:
                raise TreeImportError("Unbalanced parentheses in Newick string")
            close_node(node_stack)
            mode = "character_reader"

        elif char == ",":
            flush_buffer(buffer, node_stack, mode)
            if len(node_stack) <= 1:
                raise TreeImportError("Comma outside of a clade in Newick string")
            close_node(node_stack)
            node_stack = create_new_node(node_stack, default_length)
            mode = "character_reader"

        elif char == ":":
            flush_buffer(buffer, node_stack, mode)
            mode = "length_reader"

        elif char == ";":
            flush_buffer(buffer, node_stack, mode)
            if depth != 0:
                raise TreeImportError("Unbalanced parentheses in Newick string")
            while len(node_stack) > 1:
                close_node(node_stack)
            if node_stack:
                trees.append(node_stack.pop())

            # Reset parser state for the next tree
            node_stack = []
            buffer = []
            meta_buffer = []
            mode = "character_reader"

        else:
            buffer.append(char)

        index += 1

    if mode in ("quoted_reader", "metadata_reader"):
        raise TreeImportError("Unterminated quote or comment in Newick string")

    if node_stack and (node_stack[0].children or "".join(buffer).strip()):
        flush_buffer(buffer, node_stack, mode)
        if depth != 0:
            raise TreeImportError("Unbalanced parentheses in Newick string")
        while len(node_stack) > 1:
            close_node(node_stack)
        trees.append(node_stack.pop())

    return trees


# ===================================================================
# 5. PUBLIC API FUNCTIONS
# ===================================================================


def apply_translation(tree: Node, translate: Dict[str, str]) -> None:
    """Replace leaf tokens with the labels of a NEXUS translate table."""
    for leaf in tree.get_leaves():
        if leaf.name in translate:
            leaf.name = translate[leaf.name]


def parse_newick(
    tokens: str,
    encoding: Optional[Dict[str, int]] = None,
    translate: Optional[Dict[str, str]] = None,
    default_length: Optional[float] = 1.0,
    force_list: bool = False,
) -> Union[Node, List[Node]]:
    """
    Parse a Newick string into a tree or list of trees.

    Post-processing applies the translate table, assigns split indices over the
    taxon encoding and derives node heights from the branch lengths.

    Args:
        tokens: Newick format string
        encoding: Mapping from taxon names to indices; built from the leaf order
            of the first tree when omitted
        translate: Optional NEXUS translate table (token -> taxon label)
        default_length: Default branch length for non-root nodes without one
        force_list: Always return a list even for single trees

    Returns:
        Single Node or list of Nodes representing parsed tree(s)

    Raises:
        TreeImportError: If the string holds no tree or is malformed
        TaxonMismatchError: If a leaf is not part of the encoding
    """
    trees: List[Node] = _parse_newick(tokens, default_length=default_length)
    if not trees:
        raise TreeImportError("No tree found in Newick string")

    for tree in trees:
        if translate:
            apply_translation(tree, translate)

    if encoding is None:
        order = trees[0].get_current_order()
        encoding = {name: idx for idx, name in enumerate(order)}

    for tree in trees:
        tree.initialize_split_indices(encoding)
        tree.compute_heights()

    if len(trees) == 1 and not force_list:
        return trees[0]
    return trees
