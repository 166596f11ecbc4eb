import io
import itertools
import random

import pytest

import huffman as huff


EXAMPLE_TEXT = "aaaaaaaaaaaaaaaaaaaaaaaabbbbbbbbbbbbccccccccccddddddddeeeeeeee"


def _random_table(rng, n):
    return {chr(ord('a') + i): rng.randint(1, 50) for i in range(n)}


def _brute_force_optimum(frequencies):
    """
    Smallest weighted length over all code length vectors satisfying
    Kraft's inequality, which is exactly the set of achievable prefix codes
    """
    n = len(frequencies)
    max_len = n - 1
    best = None
    for lengths in itertools.product(range(1, max_len + 1), repeat=n):
        if sum(2 ** (max_len - l) for l in lengths) > 2 ** max_len:
            continue
        cost = sum(f * l for f, l in zip(frequencies, lengths))
        if best is None or cost < best:
            best = cost
    return best


# Frequency counting

def test_count_frequencies_from_string():
    assert huff.count_frequencies("mississippi") == {'m': 1, 'i': 4, 's': 4, 'p': 2}


def test_count_frequencies_from_bytes_counts_byte_values():
    assert huff.count_frequencies(b"aab") == {97: 2, 98: 1}


def test_count_frequencies_drains_file_like_in_chunks(monkeypatch):
    monkeypatch.setattr(huff, "READ_CHUNK_SIZE", 3)
    stream = io.StringIO(EXAMPLE_TEXT)
    assert huff.count_frequencies(stream) == {'a': 24, 'b': 12, 'c': 10, 'd': 8, 'e': 8}
    assert stream.read() == ""
    assert not stream.closed


def test_count_frequencies_empty_stream_gives_empty_table():
    assert huff.count_frequencies(io.BytesIO(b"")) == {}
    assert huff.count_frequencies([]) == {}


def test_count_file_frequencies(tmp_path):
    path = tmp_path / "input.txt"
    path.write_bytes(b"abracadabra")
    assert huff.count_file_frequencies(path) == {97: 5, 98: 2, 114: 2, 99: 1, 100: 1}


def test_count_file_frequencies_missing_file_propagates(tmp_path):
    with pytest.raises(FileNotFoundError):
        huff.count_file_frequencies(tmp_path / "missing.bin")


class _FailsAfterFirstRead(io.BytesIO):
    def __init__(self):
        super().__init__(b"abcabc")
        self.reads = 0

    def read(self, n=-1):
        self.reads += 1
        if self.reads > 1:
            raise OSError("read failed")
        return super().read(n)


def test_count_file_frequencies_closes_file_when_read_fails(monkeypatch, tmp_path):
    handles = []

    def fake_open(path, mode):
        handles.append(_FailsAfterFirstRead())
        return handles[-1]

    monkeypatch.setattr(huff, "open", fake_open, raising=False)
    monkeypatch.setattr(huff, "READ_CHUNK_SIZE", 3)
    with pytest.raises(OSError):
        huff.count_file_frequencies(tmp_path / "input.bin")
    assert len(handles) == 1
    assert handles[0].reads == 2
    assert handles[0].closed


class _FailingStream:
    def read(self, n):
        raise OSError("disk went away")


def test_read_errors_propagate():
    with pytest.raises(OSError):
        huff.encode(_FailingStream())


# Nodes

@pytest.mark.parametrize("frequency", [0, -1])
def test_node_rejects_frequency_below_one(frequency):
    with pytest.raises(huff.InvalidFrequencyError):
        huff.HuffmanLeaf('x', frequency)


def test_internal_node_frequency_is_sum_of_children():
    node = huff.HuffmanInternalNode(huff.HuffmanLeaf('a', 3), huff.HuffmanLeaf('b', 4))
    assert node.frequency == 7
    assert not node.is_degenerate


def test_degenerate_node_keeps_child_frequency():
    node = huff.HuffmanInternalNode(huff.HuffmanLeaf('a', 5))
    assert node.frequency == 5
    assert node.is_degenerate
    assert node.right is None


def test_nodes_order_by_frequency():
    assert huff.HuffmanLeaf('a', 1) < huff.HuffmanLeaf('b', 2)
    assert not huff.HuffmanLeaf('a', 2) < huff.HuffmanLeaf('b', 2)


# Tree construction

def test_build_rejects_empty_table():
    with pytest.raises(huff.InvalidAlphabetError):
        huff.build_huffman_tree({})


def test_single_symbol_tree_is_trivial():
    tree = huff.encode("zzzz")
    assert tree.is_trivial
    assert tree.root.left.symbol == 'z'
    assert tree.frequency == 4
    assert str(tree) == "('z' #)"


def test_mississippi_shape():
    tree = huff.encode("mississippi")
    assert len(tree.leaves()) == 4
    assert len(tree.internal_nodes()) == 3
    assert tree.frequency == 11
    # m and p merge first; the 3 then ties against i and s at 4 by insertion order
    assert str(tree) == "('s' (('m' 'p') 'i'))"


def test_internal_frequencies_sum_down_to_leaf_counts():
    table = huff.count_frequencies("she sells seashells by the seashore")
    tree = huff.encode_frequencies(table)
    for node in tree.internal_nodes():
        assert node.frequency == node.left.frequency + node.right.frequency
    assert {leaf.symbol: leaf.frequency for leaf in tree.leaves()} == table


def test_same_table_gives_same_tree():
    table = huff.count_frequencies(EXAMPLE_TEXT)
    assert str(huff.encode(table)) == str(huff.encode(table))


def test_first_extracted_node_goes_left():
    tree = huff.encode({'x': 2, 'y': 1})
    assert tree.root.left.symbol == 'y'
    assert tree.root.right.symbol == 'x'


# Code tables

def test_single_symbol_code_is_zero():
    assert huff.encode({'q': 9}).code_table() == {'q': "0"}


def test_bare_leaf_code_is_zero():
    assert huff.generate_huffman_codes(huff.HuffmanLeaf('q', 1)) == {'q': "0"}


def test_example_code_lengths():
    table = huff.count_frequencies(EXAMPLE_TEXT)
    assert table == {'a': 24, 'b': 12, 'c': 10, 'd': 8, 'e': 8}
    codes = huff.encode(table).code_table()
    assert len(codes['a']) <= len(codes['b'])
    assert len(codes['b']) <= min(len(codes['c']), len(codes['d']), len(codes['e']))
    assert huff.weighted_code_length(codes, table) == 24 * 1 + (12 + 10 + 8 + 8) * 3
    assert huff.weighted_code_length(codes, table) == _brute_force_optimum(list(table.values()))


@pytest.mark.parametrize("seed", range(20))
def test_codes_are_bijective_and_prefix_free(seed):
    rng = random.Random(seed)
    table = _random_table(rng, rng.randint(2, 26))
    codes = huff.encode(table).code_table()
    assert set(codes) == set(table)
    assert len(set(codes.values())) == len(codes)
    assert all(set(code) <= {'0', '1'} and code for code in codes.values())
    assert huff.is_prefix_free(codes)


@pytest.mark.parametrize("seed", range(30))
def test_weighted_length_matches_brute_force_optimum(seed):
    rng = random.Random(1000 + seed)
    table = _random_table(rng, rng.randint(2, 6))
    codes = huff.encode(table).code_table()
    assert huff.weighted_code_length(codes, table) == _brute_force_optimum(list(table.values()))


def test_average_length_within_one_bit_of_entropy():
    table = huff.count_frequencies("she sells seashells by the seashore")
    codes = huff.encode(table).code_table()
    entropy = huff.shannon_entropy(table)
    assert entropy <= huff.average_code_length(codes, table) < entropy + 1


def test_is_prefix_free_detects_prefix():
    assert huff.is_prefix_free({'a': "0", 'b': "10", 'c': "11"})
    assert not huff.is_prefix_free({'a': "1", 'b': "10"})


# Formatting

def test_format_tree_absent_child():
    assert huff.format_tree(None) == "#"
    assert huff.format_tree(huff.HuffmanInternalNode(huff.HuffmanLeaf('k', 1))) == "('k' #)"


def _fibonacci_table(n):
    table, a, b = {}, 1, 1
    for i in range(n):
        table[i] = a
        a, b = b, a + b
    return table


def test_deep_skewed_tree_codes_and_formatting():
    table = _fibonacci_table(1200)
    tree = huff.encode(table)
    codes = tree.code_table()
    assert set(codes) == set(table)
    assert max(len(code) for code in codes.values()) >= 1000
    assert huff.is_prefix_free(codes)
    text = str(tree)
    assert text.count("(") == text.count(")") == len(table) - 1
    assert "#" not in text


def test_format_tree_byte_symbols():
    assert huff.format_tree(huff.encode(b"ab").root) == "('97' '98')"


# Entry points

@pytest.mark.parametrize("source", [None, {}, "", b"", io.StringIO("")])
def test_empty_or_missing_input_is_invalid_alphabet(source):
    with pytest.raises(huff.InvalidAlphabetError):
        huff.encode(source)


def test_encode_frequencies_rejects_none():
    with pytest.raises(huff.InvalidAlphabetError):
        huff.encode_frequencies(None)


def test_invalid_alphabet_is_value_error():
    assert issubclass(huff.InvalidAlphabetError, ValueError)
    assert issubclass(huff.InvalidFrequencyError, huff.HuffmanError)


def test_zero_count_in_supplied_table_is_rejected():
    with pytest.raises(huff.InvalidFrequencyError):
        huff.encode({'a': 3, 'b': 0})


def test_stream_and_table_give_same_tree():
    table = huff.count_frequencies(EXAMPLE_TEXT)
    assert str(huff.encode(EXAMPLE_TEXT)) == str(huff.encode(table))


def test_main_prints_tree_and_codes(capsys):
    assert huff.main(["mississippi"]) == 0
    out = capsys.readouterr().out
    assert "Tree: ('s' (('m' 'p') 'i'))" in out
    assert "Average code length" in out


def test_main_reads_file(tmp_path, capsys):
    path = tmp_path / "data.bin"
    path.write_bytes(b"aaab")
    assert huff.main(["--file", str(path)]) == 0
    assert "('98' '97')" in capsys.readouterr().out


def test_main_empty_input_fails(capsys):
    assert huff.main([""]) == 1
    assert "error:" in capsys.readouterr().err
