"""
This module turns recognition results into classification metrics:
accuracy, precision, recall and F1-score per algorithm, bootstrap
confidence intervals for the accuracy, and comparison tables across
algorithms.
"""

import json
import os
import numpy as np
import pandas as pd
from sklearn.metrics import (
    accuracy_score, precision_score, recall_score, f1_score,
    confusion_matrix, classification_report
)
import config
from facerec.catalog import class_name


def recognition_labels(result):
    """
    True and predicted class names of a recognition result.

    The true class of a test image and the predicted class of its matched
    training image are both read from the file names.

    Args:
        result: RecognitionResult of one algorithm

    Returns:
        tuple: (y_true, y_pred) numpy arrays of class names
    """
    y_true = np.array([class_name(test_name) for test_name, _ in result.matches])
    y_pred = np.array([class_name(train_name) for _, train_name in result.matches])
    return y_true, y_pred


def compute_classification_metrics(y_true, y_pred, target_names=None):
    """
    Compute classification metrics for one algorithm.

    Args:
        y_true: Ground truth labels array
        y_pred: Predicted labels array
        target_names: Optional list of class names for the detailed report

    Returns:
        dict: accuracy, macro and weighted precision/recall/F1, confusion matrix
    """
    metrics = {"accuracy": accuracy_score(y_true, y_pred)}

    # test sets are rarely balanced across classes, so report both averages
    for average in ("macro", "weighted"):
        for key, score in (("precision", precision_score), ("recall", recall_score), ("f1", f1_score)):
            metrics[f"{key}_{average}"] = score(y_true, y_pred, average=average, zero_division=0)

    labels = np.unique(np.concatenate([np.asarray(y_true), np.asarray(y_pred)]))
    metrics["labels"] = labels.tolist()
    metrics["confusion_matrix"] = confusion_matrix(y_true, y_pred, labels=labels).tolist()

    if target_names is not None:
        metrics["classification_report"] = classification_report(
            y_true, y_pred, labels=labels, target_names=target_names, output_dict=True, zero_division=0
        )

    return metrics


def calculate_confidence_intervals(y_true, y_pred, n_bootstrap=1000, confidence_level=0.95,
                                   random_state=config.RANDOM_STATE):
    """
    Compute confidence intervals for accuracy using bootstrap sampling.

    Args:
        y_true: Ground truth labels array
        y_pred: Predicted labels array
        n_bootstrap: Number of bootstrap iterations
        confidence_level: Desired confidence level (default 0.95 for 95% CI)
        random_state: Seed of the resampling

    Returns:
        dict: mean accuracy, lower/upper bounds and std
    """
    y_true = np.asarray(y_true)
    y_pred = np.asarray(y_pred)
    n_samples = len(y_true)

    if n_samples == 0:
        return {"accuracy": 0.0, "lower_bound": 0.0, "upper_bound": 0.0,
                "confidence_level": confidence_level, "std": 0.0}

    rng = np.random.default_rng(random_state)
    correct = (y_true == y_pred).astype(float)

    # one resample of the test set per row
    samples = rng.integers(0, n_samples, size=(n_bootstrap, n_samples))
    accuracies = correct[samples].mean(axis=1)

    tail = (1 - confidence_level) / 2 * 100
    lower, upper = np.percentile(accuracies, [tail, 100 - tail])

    return {
        "accuracy": float(accuracies.mean()),
        "lower_bound": float(lower),
        "upper_bound": float(upper),
        "confidence_level": confidence_level,
        "std": float(accuracies.std())
    }


def create_metrics_dataframe(metrics_dict, algorithm):
    """
    Convert a metrics dictionary to a single-row DataFrame.

    Args:
        metrics_dict: Dictionary of computed metrics
        algorithm: Name of the algorithm (e.g. "PCA")

    Returns:
        pd.DataFrame: one row with the headline metrics
    """
    row = {
        "algorithm": algorithm,
        "matched": metrics_dict.get("matched", np.nan),
        "total": metrics_dict.get("total", np.nan),
        "accuracy": metrics_dict["accuracy"],
        "precision_macro": metrics_dict["precision_macro"],
        "recall_macro": metrics_dict["recall_macro"],
        "f1_macro": metrics_dict["f1_macro"]
    }

    if "confidence_interval" in metrics_dict:
        ci = metrics_dict["confidence_interval"]
        row["acc_lower"] = ci["lower_bound"]
        row["acc_upper"] = ci["upper_bound"]

    return pd.DataFrame([row])


def compute_recognition_metrics(results, with_confidence=True):
    """
    Metrics of every algorithm of a recognition run.

    Args:
        results: list of RecognitionResult
        with_confidence: also compute bootstrap confidence intervals

    Returns:
        dict: algorithm name -> metrics dictionary
    """
    all_metrics = {}

    for result in results:
        if result.num_test == 0:
            continue

        y_true, y_pred = recognition_labels(result)
        metrics = compute_classification_metrics(y_true, y_pred)
        metrics["matched"] = result.num_correct
        metrics["total"] = result.num_test

        if with_confidence:
            metrics["confidence_interval"] = calculate_confidence_intervals(y_true, y_pred)

        all_metrics[result.name] = metrics

    return all_metrics


def compare_algorithms(all_metrics):
    """
    Aggregate the metrics of several algorithms, sorted by accuracy.

    Args:
        all_metrics: dict algorithm name -> metrics dictionary

    Returns:
        pd.DataFrame: one row per algorithm
    """
    dfs = [create_metrics_dataframe(metrics, name) for name, metrics in all_metrics.items()]

    if not dfs:
        return pd.DataFrame()

    df_comparison = pd.concat(dfs, ignore_index=True)
    return df_comparison.sort_values("accuracy", ascending=False, kind="stable").reset_index(drop=True)


def save_metrics_to_json(metrics, path):
    """Write a metrics dictionary as JSON, creating the directory if needed."""
    os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)

    def default(obj):
        if isinstance(obj, np.generic):
            return obj.item()
        if isinstance(obj, np.ndarray):
            return obj.tolist()
        raise TypeError(f"{type(obj).__name__} is not JSON serializable")

    with open(path, 'w') as f:
        json.dump(metrics, f, indent=2, default=default)


def save_metrics_to_csv(df, path):
    os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
    df.to_csv(path, index=False)


def print_metrics_summary(metrics, name):
    print(f"\n{name}")
    print(f"  Accuracy: {metrics['accuracy']:.4f}")
    print(f"  Precision (macro): {metrics['precision_macro']:.4f}")
    print(f"  Recall (macro): {metrics['recall_macro']:.4f}")
    print(f"  F1 (macro): {metrics['f1_macro']:.4f}")
    if "confidence_interval" in metrics:
        ci = metrics["confidence_interval"]
        print(f"  {ci['confidence_level'] * 100:.0f}% CI: [{ci['lower_bound']:.4f}, {ci['upper_bound']:.4f}]")
