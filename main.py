# main.py
import argparse
import os
import sys

import config
from facerec.database import Database
from facerec.errors import FaceRecError
from facerec.metrics import (
    compare_algorithms, compute_recognition_metrics, print_metrics_summary,
    save_metrics_to_csv, save_metrics_to_json
)
from facerec.timing import timing_clear, timing_print
from facerec.utils import plot_accuracy, plot_eigenfaces, plot_mean_face, plot_scree_plot


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description='Face recognition with PCA, LDA and ICA subspaces'
    )
    parser.add_argument('--train', metavar='DIR',
                        help='train a database with the images in DIR (one sub-directory per class)')
    parser.add_argument('--test', metavar='DIR',
                        help='recognize the images in DIR with a trained database')
    parser.add_argument('--pca', action='store_true', help='use PCA (eigenfaces)')
    parser.add_argument('--lda', action='store_true', help='use LDA (Fisherfaces)')
    parser.add_argument('--ica', action='store_true', help='use ICA (Infomax)')
    parser.add_argument('--all', action='store_true', help='use PCA, LDA and ICA')
    parser.add_argument('--lda1', type=int, default=config.LDA_N_OPT1,
                        help='number of eigenfaces kept for LDA (default: N - c)')
    parser.add_argument('--lda2', type=int, default=config.LDA_N_OPT2,
                        help='number of Fisher directions (default: c - 1)')
    parser.add_argument('--model-dir', default=config.MODELS_PATH,
                        help=f'directory of the saved database (default: {config.MODELS_PATH})')
    parser.add_argument('--metrics-dir', default=None,
                        help='write per-algorithm metrics (JSON and CSV) to this directory')
    parser.add_argument('--plot', action='store_true',
                        help=f'save figures to {config.OUTPUT_PATH}')
    parser.add_argument('--timing', action='store_true', help='print stage timings')
    parser.add_argument('-v', '--verbose', action='store_true', default=config.VERBOSE,
                        help='print progress and per-image matches')

    args = parser.parse_args(argv)

    if args.all:
        args.pca = args.lda = args.ica = True

    if not args.train and not args.test:
        parser.error('nothing to do: use --train and/or --test')

    return args


def main(argv=None):
    args = parse_args(argv)
    timing_clear()

    path_tset = os.path.join(args.model_dir, config.TRAINING_SET_FILE)
    path_tdata = os.path.join(args.model_dir, config.TRAINING_DATA_FILE)

    try:
        if args.train:
            db = Database(args.pca, args.lda, args.ica, args.lda1, args.lda2, verbose=args.verbose)
            db.train(args.train)

            os.makedirs(args.model_dir, exist_ok=True)
            db.save(path_tset, path_tdata)

            if args.verbose:
                print(f"Database saved to {args.model_dir}")

            if args.plot:
                plot_mean_face(db)
                if db.algorithms[0].layer.W_tr is not None:
                    plot_eigenfaces(db.algorithms[0].layer, db.image_shape)
                    plot_scree_plot(db.algorithms[0].layer)

        if args.test:
            db = Database(args.pca, args.lda, args.ica, args.lda1, args.lda2, verbose=args.verbose)
            db.load(path_tset, path_tdata)
            results = db.recognize(args.test)

            if args.metrics_dir or args.plot:
                all_metrics = compute_recognition_metrics(results)

                if args.verbose:
                    for name, metrics in all_metrics.items():
                        print_metrics_summary(metrics, name)

                if args.metrics_dir:
                    for name, metrics in all_metrics.items():
                        save_metrics_to_json(metrics, os.path.join(args.metrics_dir, f"{name.lower()}.json"))
                    save_metrics_to_csv(compare_algorithms(all_metrics),
                                        os.path.join(args.metrics_dir, "comparison.csv"))

                if args.plot and results:
                    plot_accuracy(results)
    except FaceRecError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    if args.timing:
        timing_print()

    return 0


if __name__ == "__main__":
    sys.exit(main())
