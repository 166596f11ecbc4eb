"""
Huffman code quality and build cost experiments

Runs repeated count -> build -> code table passes over synthetic datasets
and records how close the average code length gets to the entropy bound,
and how construction time grows with input size and alphabet size.

Outputs (in --outdir):
  - metrics.csv     (raw row per run)
  - summary.csv     (grouped mean/stdev)
  - *.png           (charts)

How to run:
  python experiments.py --outdir results --runs 5
  python experiments.py --outdir results --runs 3 --exp2_max_mb 4 --no_exp3
  python experiments.py --outdir results --exp1_generators uniform256,zipf64,english_like
"""

from __future__ import annotations

import argparse
import csv
import random
import statistics
import time
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Dict, List, Tuple, Callable, Sequence

import matplotlib.pyplot as plt

import huffman as huff


# Utilities

def now_ns() -> int:
    return time.perf_counter_ns()

def ns_to_ms(ns: int) -> float:
    return ns / 1_000_000.0

def safe_mkdir(p: Path) -> None:
    p.mkdir(parents=True, exist_ok=True)

def node_sums_consistent(tree: huff.HuffmanTree) -> bool:
    for node in tree.internal_nodes():
        expected = node.left.frequency + (0 if node.right is None else node.right.frequency)
        if node.frequency != expected:
            return False
    return True


# Synthetic dataset generators

def _sample(rng: random.Random, symbols: Sequence[int], weights: Sequence[float], size: int) -> bytes:
    return bytes(rng.choices(symbols, weights=weights, k=size))

def gen_uniform(size: int, alphabet: int = 256, seed: int = 0) -> bytes:
    rng = random.Random(seed)
    return bytes(rng.randrange(0, alphabet) for _ in range(size))

def gen_repetitive(size: int, dominant: int = ord('A'), dom_frac: float = 0.90, seed: int = 0) -> bytes:
    rng = random.Random(seed)
    others = [i for i in range(256) if i != dominant]
    # dominant symbol takes dom_frac of the mass, the rest is spread evenly
    weights = [dom_frac] + [(1.0 - dom_frac) / len(others)] * len(others)
    return _sample(rng, [dominant] + others, weights, size)

def gen_zipf_like(size: int, alphabet: int = 128, s: float = 1.2, seed: int = 0) -> bytes:
    rng = random.Random(seed)
    weights = [1.0 / ((rank + 1) ** s) for rank in range(alphabet)]
    return _sample(rng, list(range(alphabet)), weights, size)

ENGLISH_WEIGHTS: Dict[str, float] = {' ': 13.0, '\n': 1.5}
for _ch in "etaoinshrdlu":
    ENGLISH_WEIGHTS[_ch] = ENGLISH_WEIGHTS[_ch.upper()] = 6.0
for _ch in "cmfwgypbvk":
    ENGLISH_WEIGHTS[_ch] = ENGLISH_WEIGHTS[_ch.upper()] = 2.5
for _ch in "jxqz":
    ENGLISH_WEIGHTS[_ch] = ENGLISH_WEIGHTS[_ch.upper()] = 1.2

def gen_english_like(size: int, seed: int = 0) -> bytes:
    rng = random.Random(seed)
    symbols = [ord(ch) for ch in ENGLISH_WEIGHTS]
    return _sample(rng, symbols, list(ENGLISH_WEIGHTS.values()), size)

GENERATOR_REGISTRY: Dict[str, Callable[[int, int], bytes]] = {
    "uniform256": lambda size, seed: gen_uniform(size, alphabet=256, seed=seed),
    "uniform16": lambda size, seed: gen_uniform(size, alphabet=16, seed=seed),
    "zipf128": lambda size, seed: gen_zipf_like(size, alphabet=128, s=1.2, seed=seed),
    "zipf64": lambda size, seed: gen_zipf_like(size, alphabet=64, s=1.2, seed=seed),
    "repetitive90": lambda size, seed: gen_repetitive(size, dominant=ord('A'), dom_frac=0.90, seed=seed),
    "repetitive99": lambda size, seed: gen_repetitive(size, dominant=ord('A'), dom_frac=0.99, seed=seed),
    "english_like": lambda size, seed: gen_english_like(size, seed=seed),
}

def generate_dataset(name: str, size_bytes: int, seed: int) -> Tuple[str, bytes]:
    """
    Unknown dataset names fall back to uniform256 and are tagged as such
    in the returned name
    """
    fn = GENERATOR_REGISTRY.get(name)
    if fn is None:
        return f"{name}_fallback_uniform256", gen_uniform(size_bytes, alphabet=256, seed=seed)
    return name, fn(size_bytes, seed)


# Experiment runner

@dataclass
class MetricRow:
    exp_name: str
    dataset_name: str
    file_size_bytes: int
    run_id: int
    unique_symbols: int

    count_ms: float
    build_tree_ms: float
    code_table_ms: float
    total_ms: float

    avg_code_length: float
    entropy_bits: float
    redundancy_bits: float
    max_code_length: int

    correctness_ok: int  # 1 or 0


def run_one(data: bytes) -> MetricRow:
    t0 = now_ns()
    ft = huff.count_frequencies(data)
    t1 = now_ns()
    tree = huff.encode_frequencies(ft)
    t2 = now_ns()
    codes = tree.code_table()
    t3 = now_ns()

    correctness_ok = int(
        set(codes) == set(ft)
        and huff.is_prefix_free(codes)
        and node_sums_consistent(tree)
        and tree.frequency == len(data)
    )
    avg_len = huff.average_code_length(codes, ft)
    entropy = huff.shannon_entropy(ft)

    return MetricRow(
        exp_name="",
        dataset_name="",
        file_size_bytes=len(data),
        run_id=0,
        unique_symbols=len(ft),
        count_ms=ns_to_ms(t1 - t0),
        build_tree_ms=ns_to_ms(t2 - t1),
        code_table_ms=ns_to_ms(t3 - t2),
        total_ms=ns_to_ms(t3 - t0),
        avg_code_length=avg_len,
        entropy_bits=entropy,
        redundancy_bits=avg_len - entropy,
        max_code_length=max(len(c) for c in codes.values()),
        correctness_ok=correctness_ok,
    )


def write_csv(path: Path, rows: List[MetricRow]) -> None:
    names = [f.name for f in fields(MetricRow)]
    with path.open("w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=names)
        w.writeheader()
        for r in rows:
            w.writerow({k: getattr(r, k) for k in names})


SUMMARY_METRICS = (
    "count_ms", "build_tree_ms", "code_table_ms", "total_ms",
    "avg_code_length", "entropy_bits", "redundancy_bits",
)

def mean_stdev(vals: List[float]) -> Tuple[float, float]:
    if len(vals) == 1:
        return vals[0], 0.0
    return statistics.mean(vals), statistics.stdev(vals)

def group_summary(rows: List[MetricRow], out_path: Path) -> None:
    """
    Group by exp_name, dataset_name, file_size_bytes and write mean/stdev per metric
    """
    key_to: Dict[Tuple[str, str, int], List[MetricRow]] = {}
    for r in rows:
        key_to.setdefault((r.exp_name, r.dataset_name, r.file_size_bytes), []).append(r)

    summary_fields = ["exp_name", "dataset_name", "file_size_bytes", "n_runs", "unique_symbols_mean"]
    for m in SUMMARY_METRICS:
        summary_fields += [f"{m}_mean", f"{m}_stdev"]
    summary_fields.append("correctness_ok_rate")

    with out_path.open("w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=summary_fields)
        w.writeheader()
        for (exp_name, dataset_name, size_b), items in sorted(key_to.items()):
            out = {
                "exp_name": exp_name,
                "dataset_name": dataset_name,
                "file_size_bytes": size_b,
                "n_runs": len(items),
                "unique_symbols_mean": statistics.mean(x.unique_symbols for x in items),
                "correctness_ok_rate": sum(x.correctness_ok for x in items) / len(items),
            }
            for m in SUMMARY_METRICS:
                out[f"{m}_mean"], out[f"{m}_stdev"] = mean_stdev([getattr(x, m) for x in items])
            w.writerow(out)


# Plotting

def _mean_of(rows: List[MetricRow], field: str) -> float:
    vals = [getattr(r, field) for r in rows]
    return statistics.mean(vals) if vals else float("nan")

def plot_experiment_1(rows: List[MetricRow], outdir: Path) -> None:
    exp_rows = [r for r in rows if r.exp_name == "exp1_distribution"]
    if not exp_rows:
        return

    datasets = sorted(set(r.dataset_name for r in exp_rows))
    x = list(range(len(datasets)))
    per_dataset = {d: [r for r in exp_rows if r.dataset_name == d] for d in datasets}

    plt.figure()
    plt.plot(x, [_mean_of(per_dataset[d], "avg_code_length") for d in datasets], marker="o", label="Huffman average")
    plt.plot(x, [_mean_of(per_dataset[d], "entropy_bits") for d in datasets], marker="s", label="Entropy")
    plt.xticks(x, datasets, rotation=20, ha="right")
    plt.ylabel("Bits per Symbol")
    plt.title("Experiment 1: Code Length vs Entropy by Distribution")
    plt.legend()
    plt.tight_layout()
    plt.savefig(outdir / "exp1_code_length.png", dpi=200)
    plt.close()

    plt.figure()
    plt.bar(x, [_mean_of(per_dataset[d], "redundancy_bits") for d in datasets])
    plt.xticks(x, datasets, rotation=20, ha="right")
    plt.ylabel("Average Length - Entropy (bits)")
    plt.title("Experiment 1: Redundancy by Distribution")
    plt.tight_layout()
    plt.savefig(outdir / "exp1_redundancy.png", dpi=200)
    plt.close()


def plot_experiment_2(rows: List[MetricRow], outdir: Path) -> None:
    exp_rows = [r for r in rows if r.exp_name == "exp2_size_scaling"]
    if not exp_rows:
        return

    for dist in sorted(set(r.dataset_name for r in exp_rows)):
        dist_rows = [r for r in exp_rows if r.dataset_name == dist]
        sizes = sorted(set(r.file_size_bytes for r in dist_rows))
        by_size = {s: [r for r in dist_rows if r.file_size_bytes == s] for s in sizes}

        plt.figure()
        for field, label in (("count_ms", "count"), ("build_tree_ms", "build tree"), ("code_table_ms", "code table")):
            plt.plot(sizes, [_mean_of(by_size[s], field) for s in sizes], marker="o", label=label)
        plt.xscale("log", base=2)
        plt.xlabel("File Size (bytes)")
        plt.ylabel("Time (ms)")
        plt.title(f"Experiment 2: Phase Time vs Size ({dist})")
        plt.legend()
        plt.tight_layout()
        plt.savefig(outdir / f"exp2_phase_time_{dist}.png", dpi=200)
        plt.close()


def plot_experiment_3(rows: List[MetricRow], outdir: Path) -> None:
    exp_rows = [r for r in rows if r.exp_name == "exp3_alphabet_scaling"]
    if not exp_rows:
        return

    alphabets = sorted(set(r.unique_symbols for r in exp_rows))
    by_alpha = {a: [r for r in exp_rows if r.unique_symbols == a] for a in alphabets}

    plt.figure()
    plt.plot(alphabets, [_mean_of(by_alpha[a], "build_tree_ms") for a in alphabets], marker="o", label="build tree")
    plt.plot(alphabets, [_mean_of(by_alpha[a], "code_table_ms") for a in alphabets], marker="o", label="code table")
    plt.xlabel("Distinct Symbols")
    plt.ylabel("Time (ms)")
    plt.title("Experiment 3: Build Time vs Alphabet Size")
    plt.legend()
    plt.tight_layout()
    plt.savefig(outdir / "exp3_alphabet_time.png", dpi=200)
    plt.close()


# Main

def parse_csv_list(s: str) -> List[str]:
    return [x.strip() for x in s.split(",") if x.strip()]

def parse_args(argv=None) -> argparse.Namespace:
    ap = argparse.ArgumentParser()
    ap.add_argument("--outdir", type=str, default="results", help="Output directory for CSV and plots")
    ap.add_argument("--runs", type=int, default=5, help="Repetitions per configuration (>=3 recommended for timing)")
    ap.add_argument("--seed", type=int, default=123, help="Base random seed")

    # Experiment toggles
    ap.add_argument("--no_exp1", action="store_true", help="Disable experiment 1 (distribution)")
    ap.add_argument("--no_exp2", action="store_true", help="Disable experiment 2 (size scaling)")
    ap.add_argument("--no_exp3", action="store_true", help="Disable experiment 3 (alphabet scaling)")
    ap.add_argument("--no_plots", action="store_true", help="Write CSV files only")

    # Experiment 1 controls
    ap.add_argument("--exp1_size_kb", type=int, default=256, help="Experiment 1 fixed file size in KB")
    ap.add_argument("--exp1_generators", type=str, default="uniform256,zipf128,repetitive90,english_like",
                    help="Comma-separated dataset generator names for experiment 1")

    # Experiment 2 controls
    ap.add_argument("--exp2_min_kb", type=int, default=4, help="Experiment 2 min size in KB (power-of-two growth)")
    ap.add_argument("--exp2_max_mb", type=int, default=4, help="Experiment 2 max size in MB (power-of-two growth)")
    ap.add_argument("--exp2_generators", type=str, default="uniform256,zipf128",
                    help="Comma-separated dataset generator names for experiment 2")

    # Experiment 3 controls
    ap.add_argument("--exp3_size_kb", type=int, default=64, help="Experiment 3 fixed file size in KB")
    ap.add_argument("--exp3_alphabets", type=str, default="2,4,8,16,32,64,128,256",
                    help="Comma-separated alphabet sizes (<= 256) for experiment 3")
    return ap.parse_args(argv)

def run_experiments(args: argparse.Namespace) -> List[MetricRow]:
    rows: List[MetricRow] = []

    # Experiment 1: distributions (fixed size)
    if not args.no_exp1:
        fixed_size = max(1, args.exp1_size_kb) * 1024
        for gen_name in parse_csv_list(args.exp1_generators):
            for run_id in range(1, args.runs + 1):
                dataset_name, data = generate_dataset(gen_name, fixed_size, args.seed + run_id)
                row = run_one(data)
                row.exp_name = "exp1_distribution"
                row.dataset_name = dataset_name
                row.run_id = run_id
                rows.append(row)

    # Experiment 2: size scaling (powers of 2)
    if not args.no_exp2:
        min_bytes = max(1, args.exp2_min_kb) * 1024
        max_bytes = max(1, args.exp2_max_mb) * 1024 * 1024
        sizes: List[int] = []
        s = min_bytes
        while s <= max_bytes:
            sizes.append(s)
            s *= 2

        for gen_name in parse_csv_list(args.exp2_generators):
            for size_b in sizes:
                for run_id in range(1, args.runs + 1):
                    dataset_name, data = generate_dataset(gen_name, size_b, args.seed + 10_000 + size_b + run_id)
                    row = run_one(data)
                    row.exp_name = "exp2_size_scaling"
                    row.dataset_name = dataset_name
                    row.run_id = run_id
                    rows.append(row)

    # Experiment 3: alphabet scaling (fixed size, uniform over k symbols)
    if not args.no_exp3:
        size_b = max(1, args.exp3_size_kb) * 1024
        for alphabet in (int(a) for a in parse_csv_list(args.exp3_alphabets)):
            if not 1 <= alphabet <= 256:
                raise ValueError(f"alphabet size must be within 1..256, got {alphabet}")
            for run_id in range(1, args.runs + 1):
                data = gen_uniform(size_b, alphabet=alphabet, seed=args.seed + 200_000 + alphabet + run_id)
                row = run_one(data)
                row.exp_name = "exp3_alphabet_scaling"
                row.dataset_name = f"uniform{alphabet}"
                row.run_id = run_id
                rows.append(row)

    return rows

def main(argv=None) -> int:
    args = parse_args(argv)
    outdir = Path(args.outdir)
    safe_mkdir(outdir)

    rows = run_experiments(args)

    metrics_csv = outdir / "metrics.csv"
    summary_csv = outdir / "summary.csv"
    write_csv(metrics_csv, rows)
    group_summary(rows, summary_csv)

    if not args.no_plots:
        plot_experiment_1(rows, outdir)
        plot_experiment_2(rows, outdir)
        plot_experiment_3(rows, outdir)

    ok_rate = sum(r.correctness_ok for r in rows) / max(1, len(rows))
    print(f"Wrote {len(rows)} rows to {metrics_csv}")
    print(f"Wrote grouped summary to {summary_csv}")
    print(f"Correctness rate across all runs: {ok_rate:.3f}")
    if not args.no_plots:
        print("Charts saved in:", outdir.resolve())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
