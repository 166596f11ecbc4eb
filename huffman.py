"""
Huffman prefix codes from symbol frequencies

count_frequencies -> build_huffman_tree -> generate_huffman_codes
encode() wraps the first two steps and returns a HuffmanTree
"""

import argparse
import heapq
import math
import sys
from collections import Counter
from collections.abc import Mapping

READ_CHUNK_SIZE = 64 * 1024 # bytes/chars pulled per read() when draining a file-like source
ABSENT_CHILD = "#"


class HuffmanError(Exception):
    pass

class InvalidAlphabetError(HuffmanError, ValueError): # missing or empty frequency table
    pass

class InvalidFrequencyError(HuffmanError, ValueError): # node built with frequency < 1
    pass


class HuffmanNode: # Base node for Huffman tree, ordered by frequency only
    def __init__(self, frequency):
        if frequency < 1:
            raise InvalidFrequencyError(f"a HuffmanNode cannot have a frequency less than one (got {frequency})")
        self.frequency = frequency

    def __lt__(self, other):
        return self.frequency < other.frequency

    def is_leaf(self):
        return False

    def __str__(self):
        return format_tree(self)


class HuffmanLeaf(HuffmanNode):
    def __init__(self, symbol, frequency):
        super().__init__(frequency)
        self.symbol = symbol

    def is_leaf(self):
        return True

    def __repr__(self):
        return f"HuffmanLeaf({self.symbol!r}, {self.frequency})"


class HuffmanInternalNode(HuffmanNode):
    """
    Internal node owning its two children; frequency is the sum of theirs.

    With right=None this is the degenerate node used only for a one-symbol
    alphabet: the lone child sits in the left slot and the right slot is absent.
    """

    def __init__(self, left, right=None):
        frequency = left.frequency if right is None else left.frequency + right.frequency
        super().__init__(frequency)
        self.left = left
        self.right = right

    @property
    def is_degenerate(self):
        return self.right is None

    def __repr__(self):
        return f"HuffmanInternalNode({self.left!r}, {self.right!r})"


class HuffmanTree:
    """Owns the root of a finished Huffman tree."""

    def __init__(self, root):
        self.root = root

    @property
    def frequency(self):
        return self.root.frequency

    @property
    def is_trivial(self): # one-symbol alphabet
        return not self.root.is_leaf() and self.root.is_degenerate

    def leaves(self):
        return [node for node in _walk(self.root) if node.is_leaf()]

    def internal_nodes(self):
        return [node for node in _walk(self.root) if not node.is_leaf()]

    def code_table(self):
        return generate_huffman_codes(self.root)

    def __str__(self):
        return format_tree(self.root)

    def __repr__(self):
        return f"HuffmanTree({format_tree(self.root)})"


def _walk(node): # pre-order, skipping absent slots
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        if not current.is_leaf():
            if current.right is not None:
                stack.append(current.right)
            stack.append(current.left)


# Frequency counting

def count_frequencies(stream) -> dict:
    """
    Count symbol occurrences in a str, bytes, iterable of symbols or a
    file-like object with read(). File-like sources are drained but not closed.
    """
    counts = Counter()
    if hasattr(stream, "read"):
        chunk = stream.read(READ_CHUNK_SIZE)
        while chunk:
            counts.update(chunk)
            chunk = stream.read(READ_CHUNK_SIZE)
    else:
        counts.update(stream)
    return dict(counts)

def count_file_frequencies(path) -> dict: # byte frequencies of a file on disk
    with open(path, "rb") as f:
        return count_frequencies(f)


# Tree construction

def build_huffman_tree(frequency_table): # frequency_table: dict of symbol -> frequency
    leaves = [HuffmanLeaf(symbol, frequency) for symbol, frequency in frequency_table.items()]
    if not leaves:
        raise InvalidAlphabetError("cannot build a Huffman tree without symbols")

    # One symbol: nothing to merge, wrap the leaf so it still gets a code
    if len(leaves) == 1:
        return HuffmanInternalNode(leaves[0])

    # Ties on frequency are broken by insertion order so the tree is reproducible
    priority_queue = [(leaf.frequency, order, leaf) for order, leaf in enumerate(leaves)]
    heapq.heapify(priority_queue)
    order = len(priority_queue)

    while len(priority_queue) > 1:
        _, _, left = heapq.heappop(priority_queue)
        _, _, right = heapq.heappop(priority_queue)
        merged_node = HuffmanInternalNode(left, right)
        heapq.heappush(priority_queue, (merged_node.frequency, order, merged_node))
        order += 1

    return priority_queue[0][2] # root of the tree


# Code table

def generate_huffman_codes(root): # root: root of the Huffman tree
    # A lone symbol has a zero-length path, so it is given "0" by convention
    if root.is_leaf():
        return {root.symbol: "0"}
    if root.is_degenerate:
        return {root.left.symbol: "0"}

    codes = {}
    stack = [(root, "")] # explicit stack, skewed trees can be deeper than the recursion limit
    while stack:
        node, current_code = stack.pop()
        if node.is_leaf():
            codes[node.symbol] = current_code
            continue
        stack.append((node.right, current_code + "1"))
        stack.append((node.left, current_code + "0"))
    return codes

def is_prefix_free(codes) -> bool:
    # After sorting, a code that prefixes another sorts directly before one it prefixes
    ordered = sorted(codes.values())
    return all(not b.startswith(a) for a, b in zip(ordered, ordered[1:]))

def weighted_code_length(codes, frequency_table) -> int:
    return sum(frequency_table[symbol] * len(code) for symbol, code in codes.items())

def average_code_length(codes, frequency_table) -> float:
    total = sum(frequency_table.values())
    return weighted_code_length(codes, frequency_table) / total

def shannon_entropy(frequency_table) -> float: # bits per symbol
    total = sum(frequency_table.values())
    return -sum((f / total) * math.log2(f / total) for f in frequency_table.values())


# Formatting

def format_tree(node) -> str:
    """
    Render a node as '(left right)' recursively. Leaves are the quoted symbol,
    an absent child is '#'.
    """
    parts = []
    stack = [node] # holds nodes still to render and literal punctuation
    while stack:
        item = stack.pop()
        if isinstance(item, str):
            parts.append(item)
        elif item is None:
            parts.append(ABSENT_CHILD)
        elif item.is_leaf():
            parts.append(f"'{item.symbol}'")
        else:
            stack.extend((")", item.right, " ", item.left, "("))
    return "".join(parts)


# Entry points

def encode_frequencies(frequency_table) -> HuffmanTree:
    if frequency_table is None:
        raise InvalidAlphabetError("frequency table is missing")
    if len(frequency_table) == 0:
        raise InvalidAlphabetError("frequency table has no symbols")
    return HuffmanTree(build_huffman_tree(frequency_table))

def encode(source) -> HuffmanTree:
    """
    Build a Huffman tree from a stream of symbols, or from an already
    aggregated mapping of symbol -> count.
    """
    if source is None:
        raise InvalidAlphabetError("no input supplied")
    if isinstance(source, Mapping):
        return encode_frequencies(source)

    frequency_table = count_frequencies(source)
    if not frequency_table:
        raise InvalidAlphabetError("input stream is empty")
    return encode_frequencies(frequency_table)


def main(argv=None) -> int:
    ap = argparse.ArgumentParser(description="Print the Huffman tree and code table for some text or a file")
    ap.add_argument("text", nargs="?", default="she sells seashells by the seashore", help="Text to encode")
    ap.add_argument("--file", type=str, default=None, help="Count byte frequencies of this file instead")
    args = ap.parse_args(argv)

    try:
        if args.file is not None:
            frequency_table = count_file_frequencies(args.file)
        else:
            frequency_table = count_frequencies(args.text)
        tree = encode_frequencies(frequency_table)
    except InvalidAlphabetError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    codes = tree.code_table()
    print("Tree:", tree)
    print(f"{'Symbol':>8} {'Count':>8}  Code")
    for symbol, code in sorted(codes.items(), key=lambda item: (len(item[1]), item[1])):
        print(f"{symbol!r:>8} {frequency_table[symbol]:>8}  {code}")
    print(f"Average code length: {average_code_length(codes, frequency_table):.3f} bits"
          f" (entropy {shannon_entropy(frequency_table):.3f})")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
