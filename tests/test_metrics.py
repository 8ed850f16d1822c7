import json
import os

import numpy as np
import pandas as pd
import pytest

from facerec.database import Database, RecognitionResult
from facerec.metrics import (
    calculate_confidence_intervals, compare_algorithms, compute_classification_metrics,
    compute_recognition_metrics, create_metrics_dataframe, print_metrics_summary,
    recognition_labels, save_metrics_to_csv, save_metrics_to_json
)
from facerec.utils import (
    plot_accuracy, plot_confusion_matrix, plot_eigenfaces, plot_mean_face, plot_scree_plot
)


def _result(name, pairs):
    result = RecognitionResult(name)
    for test_name, train_name in pairs:
        result.num_test += 1
        result.matches.append((test_name, train_name))
        if test_name.split("/")[-1].split("_")[0] == train_name.split("/")[-1].split("_")[0]:
            result.num_correct += 1
    return result


@pytest.fixture
def results():
    pca = _result("PCA", [("test/s1_5.pgm", "train/s1/s1_1.pgm"),
                          ("test/s2_5.pgm", "train/s1/s1_2.pgm"),
                          ("test/s3_5.pgm", "train/s3/s3_1.pgm"),
                          ("test/s3_6.pgm", "train/s3/s3_4.pgm")])
    lda = _result("LDA", [("test/s1_5.pgm", "train/s1/s1_1.pgm"),
                          ("test/s2_5.pgm", "train/s2/s2_2.pgm"),
                          ("test/s3_5.pgm", "train/s3/s3_1.pgm"),
                          ("test/s3_6.pgm", "train/s3/s3_4.pgm")])
    return [pca, lda]


def test_recognition_labels(results):
    y_true, y_pred = recognition_labels(results[0])
    assert list(y_true) == ["s1", "s2", "s3", "s3"]
    assert list(y_pred) == ["s1", "s1", "s3", "s3"]


def test_classification_metrics():
    metrics = compute_classification_metrics(["a", "a", "b", "b"], ["a", "b", "b", "b"],
                                             target_names=["a", "b"])

    assert metrics["accuracy"] == pytest.approx(0.75)
    assert metrics["labels"] == ["a", "b"]
    assert metrics["confusion_matrix"] == [[1, 1], [0, 2]]
    assert metrics["recall_macro"] == pytest.approx(0.75)
    assert "classification_report" in metrics


def test_confidence_intervals():
    y_true = np.array([0, 1] * 20)
    y_pred = y_true.copy()
    y_pred[:10] = 1 - y_pred[:10]

    ci = calculate_confidence_intervals(y_true, y_pred, n_bootstrap=200)
    assert 0 <= ci["lower_bound"] <= 0.75 <= ci["upper_bound"] <= 1
    assert ci == calculate_confidence_intervals(y_true, y_pred, n_bootstrap=200)

    empty = calculate_confidence_intervals([], [])
    assert empty["accuracy"] == 0.0


def test_recognition_metrics(results):
    all_metrics = compute_recognition_metrics(results)

    assert set(all_metrics) == {"PCA", "LDA"}
    assert all_metrics["PCA"]["accuracy"] == pytest.approx(0.75)
    assert all_metrics["PCA"]["matched"] == 3
    assert all_metrics["LDA"]["total"] == 4
    assert "confidence_interval" in all_metrics["LDA"]

    assert compute_recognition_metrics([RecognitionResult("ICA")]) == {}


def test_compare_algorithms(results):
    df = compare_algorithms(compute_recognition_metrics(results, with_confidence=False))

    assert isinstance(df, pd.DataFrame)
    assert list(df["algorithm"]) == ["LDA", "PCA"]
    assert "acc_lower" not in df.columns
    assert compare_algorithms({}).empty


def test_metrics_dataframe(results):
    metrics = compute_recognition_metrics(results)["PCA"]
    df = create_metrics_dataframe(metrics, "PCA")
    assert df.shape[0] == 1
    assert df.loc[0, "acc_lower"] <= df.loc[0, "accuracy"] <= df.loc[0, "acc_upper"]


def test_save_metrics(results, tmp_path):
    all_metrics = compute_recognition_metrics(results)

    json_path = str(tmp_path / "out" / "pca.json")
    save_metrics_to_json(all_metrics["PCA"], json_path)
    with open(json_path) as f:
        assert json.load(f)["matched"] == 3

    csv_path = str(tmp_path / "out" / "comparison.csv")
    save_metrics_to_csv(compare_algorithms(all_metrics), csv_path)
    assert len(pd.read_csv(csv_path)) == 2


def test_print_metrics_summary(results, capsys):
    print_metrics_summary(compute_recognition_metrics(results)["LDA"], "LDA")
    out = capsys.readouterr().out
    assert "Accuracy: 1.0000" in out
    assert "95% CI" in out


def test_result_plots(results, tmp_path):
    out = str(tmp_path)
    y_true, y_pred = recognition_labels(results[0])

    for path in [plot_accuracy(results, out), plot_confusion_matrix(y_true, y_pred, "PCA", out)]:
        assert os.path.isfile(path)
    assert os.path.basename(plot_confusion_matrix(y_true, y_pred, "LDA run", out)) == "cm_lda_run.png"


def test_model_plots(corpus, tmp_path):
    out = str(tmp_path)
    db = Database(pca=True)
    db.train(corpus["train"])
    pca_layer = db.algorithms[0].layer

    paths = [
        plot_mean_face(db, out),
        plot_eigenfaces(pca_layer, db.image_shape, n_top=6, output_dir=out),
        plot_scree_plot(pca_layer, out),
    ]
    assert [os.path.basename(p) for p in paths] == ["mean_face.png", "eigenfaces.png", "scree_plot.png"]
    assert all(os.path.isfile(p) for p in paths)
