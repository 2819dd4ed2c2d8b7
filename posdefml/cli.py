#!/usr/bin/env python3
"""
posdefml CLI - Riemannian classification of PD matrices

Command-line interface for cross-validating, fitting and applying MDM
models on matrices stored in ``.npz`` files holding ``X`` (k×n×n) and
``y`` (k labels in 1..z).

Usage:
    posdefml info                           Show supported metrics
    posdefml cv DATA.npz --metric fisher    Cross-validate an MDM model
    posdefml fit DATA.npz --out MODEL.npz   Fit and save a model
    posdefml predict MODEL.npz DATA.npz     Predict with a saved model
"""
import argparse
import sys

import jax
import numpy as np

from .core import Metric, PosDefMLError, InvalidArgument


def _load_data(path, need_labels=True):
    with np.load(path) as data:
        if "X" not in data:
            raise InvalidArgument(f"{path} has no 'X' array")
        X = data["X"]
        y = data["y"] if "y" in data else None
    if need_labels and y is None:
        raise InvalidArgument(f"{path} has no 'y' array")
    return X, y


def cmd_info(args):
    """Show the supported metrics."""
    from posdefml import METRIC_TABLE

    print("""
╔══════════════════════════════════════════════════════════════════════╗
║                               posdefml                               ║
║        Minimum Distance to Mean classification of PD matrices        ║
╚══════════════════════════════════════════════════════════════════════╝

Metrics:""")
    for metric, ops in METRIC_TABLE.items():
        kind = "iterative mean" if ops.iterative else "closed-form mean"
        print(f"  • {metric.value:<15} {kind}")
    print("""
Quick Start:
    from posdefml import MDM, cross_validate

    model = MDM("fisher").fit(X_train, y_train)
    model.predict(X_test, "probabilities")
    print(cross_validate("fisher", X, y, n_folds=5))
""")
    return 0


def cmd_cv(args):
    """Cross-validate an MDM model on a dataset."""
    from posdefml import cross_validate

    X, y = _load_data(args.data)
    key = jax.random.PRNGKey(args.seed) if args.shuffle else None
    result = cross_validate(
        args.metric, X, y,
        n_folds=args.folds,
        scoring=args.scoring,
        confusion=args.confusion,
        shuffle=args.shuffle,
        key=key,
        tol=args.tol,
        n_jobs=args.jobs,
    )

    print(f"\n=== {args.folds}-fold cross-validation ({result.metric.value}) ===\n")
    for i, s in enumerate(result.scores, start=1):
        print(f"  fold {i}: {s:.3f}")
    print(f"\n{result}")
    if result.confusion is not None:
        for i, C in enumerate(result.confusion, start=1):
            print(f"\nConfusion matrix, fold {i}:")
            print(np.array2string(C, precision=0, suppress_small=True))
    return 0


def cmd_fit(args):
    """Fit an MDM model and save it."""
    from posdefml import MDM

    X, y = _load_data(args.data)
    model = MDM.from_data(args.metric, X, y, tol=args.tol, n_jobs=args.jobs)
    model.save(args.out)
    print(f"Saved {model!r} to {args.out}")
    return 0


def cmd_predict(args):
    """Predict with a saved MDM model."""
    from posdefml import MDM

    model = MDM.load(args.model)
    X, _ = _load_data(args.data, need_labels=False)
    out = np.asarray(model.predict(X, args.what))
    print(np.array2string(out, precision=4, suppress_small=True))
    return 0


def _add_model_options(parser):
    parser.add_argument('--metric', default='fisher',
                        choices=[m.value for m in Metric],
                        help='Metric for means and distances (default: fisher)')
    parser.add_argument('--tol', type=float, default=0.0,
                        help='Tolerance for iterative means (0 = default)')
    parser.add_argument('--jobs', type=int, default=1,
                        help='Parallel jobs (default: 1)')


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog='posdefml',
        description='posdefml - Riemannian classification of PD matrices',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  posdefml info                                   Supported metrics
  posdefml cv eeg.npz --metric fisher --folds 10  Balanced accuracy per fold
  posdefml cv eeg.npz --shuffle --seed 7 --confusion
  posdefml fit eeg.npz --metric logdet0 --out model.npz
  posdefml predict model.npz new.npz --what probabilities
"""
    )

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    subparsers.add_parser('info', help='Show supported metrics')

    cv_parser = subparsers.add_parser('cv', help='Cross-validate an MDM model')
    cv_parser.add_argument('data', help='.npz file with X and y')
    _add_model_options(cv_parser)
    cv_parser.add_argument('--folds', type=int, default=5,
                           help='Number of folds (default: 5)')
    cv_parser.add_argument('--scoring', default='balanced',
                           choices=['balanced', 'plain'],
                           help='Fold score (default: balanced)')
    cv_parser.add_argument('--confusion', action='store_true',
                           help='Print per-fold confusion matrices')
    cv_parser.add_argument('--shuffle', action='store_true',
                           help='Shuffle each class before partitioning')
    cv_parser.add_argument('--seed', type=int, default=0,
                           help='PRNG seed used with --shuffle (default: 0)')

    fit_parser = subparsers.add_parser('fit', help='Fit and save an MDM model')
    fit_parser.add_argument('data', help='.npz file with X and y')
    _add_model_options(fit_parser)
    fit_parser.add_argument('--out', required=True, help='Output .npz model file')

    predict_parser = subparsers.add_parser('predict', help='Predict with a saved model')
    predict_parser.add_argument('model', help='.npz model file written by fit')
    predict_parser.add_argument('data', help='.npz file with X')
    predict_parser.add_argument('--what', default='labels',
                                choices=['labels', 'probabilities', 'functions'],
                                help='Output (default: labels)')

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    commands = {
        'info': cmd_info,
        'cv': cmd_cv,
        'fit': cmd_fit,
        'predict': cmd_predict,
    }
    try:
        return commands[args.command](args)
    except PosDefMLError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
