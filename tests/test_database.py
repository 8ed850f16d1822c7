import os

import numpy as np
import pytest

from facerec.catalog import get_directory_rec, rem_base_dir
from facerec.database import Database, RecognitionResult, get_image_matrix
from facerec.errors import DataIOError, DimensionError, FaceRecError


def _model_paths(tmp_path):
    return str(tmp_path / "trainingset.dat"), str(tmp_path / "trainingdata.dat")


@pytest.fixture(scope="module")
def trained_all(corpus):
    db = Database(pca=True, lda=True, ica=True)
    db.train(corpus["train"])
    return db


def test_get_image_matrix(corpus):
    entries, _ = get_directory_rec(corpus["train"])
    T, image = get_image_matrix(entries)

    assert T.shape == (corpus["n_pixels"], corpus["n_train"])
    assert (image.channels, image.height, image.width) == (1, 16, 16)
    assert T.data.min() >= 0 and T.data.max() <= 255


def test_get_image_matrix_empty():
    with pytest.raises(DimensionError):
        get_image_matrix([])


def test_recognition_result_accuracy():
    result = RecognitionResult("PCA")
    assert result.accuracy == 0.0

    result.num_test, result.num_correct = 4, 3
    assert result.accuracy == pytest.approx(75.0)


class TestTrain:

    def test_model_fields(self, trained_all, corpus):
        db = trained_all
        assert db.num_images == corpus["n_train"]
        assert db.num_classes == corpus["n_classes"]
        assert db.num_dimensions == corpus["n_pixels"]
        assert db.mean_face.shape == (corpus["n_pixels"], 1)
        assert db.image_shape == (1, 16, 16)

    def test_projection_shapes(self, trained_all, corpus):
        pca, lda, ica = trained_all.algorithms
        n, c = corpus["n_train"], corpus["n_classes"]

        assert pca.P.shape == (n - 1, n)
        assert lda.P.shape == (c - 1, n)
        assert ica.P.shape == (n - 1, n)

    def test_recognize_noisy_images(self, trained_all, corpus, capsys):
        results = trained_all.recognize(corpus["test"])

        assert [r.name for r in results] == ["PCA", "LDA", "ICA"]
        for result in results:
            assert result.num_test == corpus["n_test"]
            assert result.accuracy == pytest.approx(100.0)

        # one accuracy line per algorithm
        assert capsys.readouterr().out.split() == ["100.00", "100.00", "100.00"]

    def test_exact_copies_match_themselves(self, trained_all, corpus):
        results = trained_all.recognize(corpus["exact"])

        for result in results:
            assert result.num_test == corpus["n_train"]
            for test_name, train_name in result.matches:
                assert rem_base_dir(test_name) == rem_base_dir(train_name), result.name

    def test_project(self, trained_all):
        T, _ = get_image_matrix(trained_all.entries)
        T.subtract_columns(trained_all.mean_face)

        projected = trained_all.project(T)
        assert set(projected) == {"PCA", "LDA", "ICA"}
        for algo in trained_all.algorithms:
            np.testing.assert_allclose(projected[algo.name].data, algo.P.data, atol=1e-8)

    def test_nearest(self, trained_all):
        pca = trained_all.algorithms[0]
        j = 5
        T_i = pca.layer.reconstruct(pca.P.copy_columns(j, j + 1))
        assert trained_all.nearest(T_i, "PCA") == j

        with pytest.raises(FaceRecError):
            trained_all.nearest(T_i, "NMF")

    def test_train_twice(self, trained_all, corpus):
        with pytest.raises(FaceRecError):
            trained_all.train(corpus["train"])

    def test_verbose_trace(self, corpus, capsys):
        db = Database(pca=True, verbose=True)
        db.train(corpus["train"])
        db.recognize(corpus["test"])

        out = capsys.readouterr().out
        assert "Computing PCA representation..." in out
        assert "test image: 's1_4.pgm'" in out
        assert f"PCA: {corpus['n_test']} / {corpus['n_test']} matched, 100.00%" in out


class TestSaveLoad:

    def test_pca_round_trip(self, corpus, tmp_path):
        path_tset, path_tdata = _model_paths(tmp_path)

        db = Database(pca=True)
        db.train(corpus["train"])
        before = db.recognize(corpus["test"])[0]
        db.save(path_tset, path_tdata)

        loaded = Database(pca=True)
        loaded.load(path_tset, path_tdata)
        after = loaded.recognize(corpus["test"])[0]

        assert loaded.num_images == db.num_images
        assert loaded.num_classes == db.num_classes
        assert loaded.entries == db.entries
        np.testing.assert_array_equal(loaded.mean_face.data, db.mean_face.data)
        np.testing.assert_array_equal(loaded.algorithms[0].P.data, db.algorithms[0].P.data)
        assert after.accuracy == before.accuracy
        assert after.matches == before.matches

    def test_all_algorithms_round_trip(self, trained_all, corpus, tmp_path):
        path_tset, path_tdata = _model_paths(tmp_path)
        trained_all.save(path_tset, path_tdata)

        loaded = Database(pca=True, lda=True, ica=True)
        loaded.load(path_tset, path_tdata)

        for saved, restored in zip(trained_all.algorithms, loaded.algorithms):
            np.testing.assert_array_equal(restored.layer.W_tr.data, saved.layer.W_tr.data)
            np.testing.assert_array_equal(restored.P.data, saved.P.data)

        expected = [r.matches for r in trained_all.recognize(corpus["test"])]
        assert [r.matches for r in loaded.recognize(corpus["test"])] == expected

    def test_block_layout(self, corpus, tmp_path):
        path_tset, path_tdata = _model_paths(tmp_path)

        db = Database(lda=True)
        db.train(corpus["train"])
        db.save(path_tset, path_tdata)

        # mean face, PCA block, LDA block: five records
        D, n, c = corpus["n_pixels"], corpus["n_train"], corpus["n_classes"]
        shapes = [(D, 1), (n - 1, D), (n - 1, n), (c - 1, D), (c - 1, n)]
        expected = sum(8 + 8 * r * k for r, k in shapes)
        assert os.path.getsize(path_tdata) == expected

        lines = open(path_tset).read().splitlines()
        assert len(lines) == n
        assert lines[0].startswith("0 ")

    def test_missing_files(self, tmp_path):
        path_tset, path_tdata = _model_paths(tmp_path)
        with pytest.raises(DataIOError):
            Database(pca=True).load(path_tset, path_tdata)

    def test_fewer_flags_than_saved(self, trained_all, tmp_path):
        path_tset, path_tdata = _model_paths(tmp_path)
        trained_all.save(path_tset, path_tdata)

        with pytest.raises(DataIOError):
            Database(pca=True).load(path_tset, path_tdata)

    def test_more_flags_than_saved(self, corpus, tmp_path):
        path_tset, path_tdata = _model_paths(tmp_path)
        db = Database(pca=True)
        db.train(corpus["train"])
        db.save(path_tset, path_tdata)

        with pytest.raises(DataIOError):
            Database(pca=True, lda=True).load(path_tset, path_tdata)

    def test_truncated_training_data(self, trained_all, tmp_path):
        path_tset, path_tdata = _model_paths(tmp_path)
        trained_all.save(path_tset, path_tdata)

        with open(path_tdata, 'rb') as f:
            raw = f.read()
        with open(path_tdata, 'wb') as f:
            f.write(raw[:-16])

        with pytest.raises(DataIOError):
            Database(pca=True, lda=True, ica=True).load(path_tset, path_tdata)

    def test_catalog_mismatch(self, trained_all, tmp_path):
        path_tset, path_tdata = _model_paths(tmp_path)
        trained_all.save(path_tset, path_tdata)

        lines = open(path_tset).read().splitlines()
        with open(path_tset, 'w') as f:
            f.write("\n".join(lines[:-1]) + "\n")

        with pytest.raises(DataIOError):
            Database(pca=True, lda=True, ica=True).load(path_tset, path_tdata)

    def test_train_after_load(self, trained_all, corpus, tmp_path):
        path_tset, path_tdata = _model_paths(tmp_path)
        trained_all.save(path_tset, path_tdata)

        db = Database(pca=True, lda=True, ica=True)
        db.load(path_tset, path_tdata)
        with pytest.raises(FaceRecError):
            db.train(corpus["train"])
        with pytest.raises(FaceRecError):
            db.load(path_tset, path_tdata)

    def test_untrained_database(self, corpus, tmp_path):
        db = Database(pca=True)
        with pytest.raises(FaceRecError):
            db.recognize(corpus["test"])
        with pytest.raises(FaceRecError):
            db.save(*_model_paths(tmp_path))
