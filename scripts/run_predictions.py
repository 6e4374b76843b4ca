from __future__ import annotations

import argparse
import functools
import logging
import sys
import time
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from m3f.data import generate_synthetic_dyads, generate_synthetic_samples
from m3f.device import predict_torch
from m3f.predict import Contributions, predict


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Posterior-averaged MMMF predictions on synthetic samples.")
    parser.add_argument("--rows", type=int, default=2000, help="Number of row entities (users).")
    parser.add_argument("--cols", type=int, default=1500, help="Number of column entities (items).")
    parser.add_argument("--dyads", type=int, default=100_000, help="Number of dyads to predict.")
    parser.add_argument("--samples", type=int, default=10, help="Number of posterior samples.")
    parser.add_argument("--factors", type=int, default=10, help="Factorization rank F.")
    parser.add_argument("--row-topics", type=int, default=2, help="Row topic count KR.")
    parser.add_argument("--col-topics", type=int, default=2, help="Column topic count KC.")
    parser.add_argument(
        "--threads",
        type=int,
        default=None,
        help="Worker threads for --backend numba (default: M3F_NUM_THREADS or CPU count).",
    )
    parser.add_argument(
        "--backend",
        choices=("numba", "torch"),
        default="numba",
        help="Evaluate with the parallel numba kernels or with torch tensors.",
    )
    parser.add_argument(
        "--device",
        type=str,
        default=None,
        help="PyTorch device for --backend torch ('cpu', 'cuda', ...). Defaults to auto-detect.",
    )
    parser.add_argument("--seed", type=int, default=0, help="Random seed.")
    parser.add_argument("--verbose", action="store_true", help="Log debug notices from the predictor.")
    args = parser.parse_args()

    if args.backend == "torch" and args.threads is not None:
        parser.error("--threads applies to --backend numba only; torch uses its own intra-op threads.")
    if args.backend == "numba" and args.device is not None:
        parser.error("--device applies to --backend torch only.")
    return args


def main() -> None:
    args = parse_args()
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    samples = generate_synthetic_samples(
        num_rows=args.rows,
        num_cols=args.cols,
        num_samples=args.samples,
        num_factors=args.factors,
        num_row_topics=args.row_topics,
        num_col_topics=args.col_topics,
        seed=args.seed,
    )
    dyads = generate_synthetic_dyads(args.rows, args.cols, args.dyads, seed=args.seed + 1)

    if args.backend == "torch":
        run = functools.partial(predict_torch, dyads.rows, dyads.cols, samples, device=args.device)
    else:
        run = functools.partial(predict, dyads.rows, dyads.cols, samples, num_threads=args.threads)

    start = time.perf_counter()
    preds = run()
    elapsed = time.perf_counter() - start

    contributions = Contributions(
        factorization=run(include_row_offsets=False, include_col_offsets=False),
        row_offsets=run(include_factorization=False, include_col_offsets=False),
        col_offsets=run(include_factorization=False, include_row_offsets=False),
    )
    residuals = preds - run(include_factorization=False)

    print(f"backend:            {args.backend}")
    print(f"dyads:              {len(preds)}")
    print(f"samples:            {len(samples)}")
    print(f"elapsed seconds:    {elapsed:.4f}")
    print(f"mean prediction:    {float(preds.mean()):.4f}")
    print(f"std prediction:     {float(preds.std()):.4f}")
    print(f"mean factorization: {float(contributions.factorization.mean()):.4f}")
    print(f"mean row offsets:   {float(contributions.row_offsets.mean()):.4f}")
    print(f"mean col offsets:   {float(contributions.col_offsets.mean()):.4f}")
    print(f"mean residual (no factorization): {float(residuals.mean()):.4f}")


if __name__ == "__main__":
    main()
