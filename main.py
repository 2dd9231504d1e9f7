import argparse
from typing import Optional, Sequence

from health_forest.pipeline import PipelineRunner


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Tune and evaluate a Random Forest on the survey data.")
    parser.add_argument("--config", default="config/default.yaml", help="YAML configuration file")
    parser.add_argument("--data", help="CSV path (overrides data.path)")
    parser.add_argument("--label", help="outcome column (overrides data.target_col)")
    parser.add_argument("--train-fraction", type=float, help="share of rows kept for training")
    parser.add_argument("--mtry", type=int, nargs="+", help="features tried per split")
    parser.add_argument("--min-n", type=int, nargs="+", help="minimum node size to split")
    parser.add_argument("--trees", type=int, nargs="+", help="forest sizes")
    parser.add_argument("--threshold", type=float, help="decision threshold for the adjusted model")
    parser.add_argument("--n-jobs", type=int, help="parallel workers for the grid search")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Run the full model-selection pipeline."""
    args = parse_args(argv)
    overrides = {
        "data": {"path": args.data, "target_col": args.label},
        "split": {"train_fraction": args.train_fraction},
        "search": {"mtry": args.mtry, "min_n": args.min_n, "trees": args.trees, "n_jobs": args.n_jobs},
        "evaluation": {"tuned_threshold": args.threshold},
    }
    runner = PipelineRunner(args.config, overrides=overrides)
    runner.run()


if __name__ == "__main__":
    main()
