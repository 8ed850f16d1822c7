import os
import shutil

import matplotlib
matplotlib.use("Agg")

import numpy as np
import pytest
from PIL import Image as PILImage

from facerec.catalog import ImageEntry
from facerec.matrix import Matrix

IMAGE_SIZE = (16, 16)
CLASSES = ["s1", "s2", "s3"]
N_TRAIN = 4
N_TEST = 2


def _write_pgm(path, arr):
    PILImage.fromarray(arr.astype(np.uint8)).save(path)


@pytest.fixture(scope="session")
def corpus(tmp_path_factory):
    """
    Synthetic face corpus: every class is a random base image plus noise.

    Layout:
        train/<class>/<class>_<i>.pgm
        test/<class>_<i>.pgm        (different noise, same classes)
        exact/<class>_<i>.pgm       (copies of the training images)
    """
    root = tmp_path_factory.mktemp("corpus")
    rng = np.random.default_rng(0)

    train_dir = root / "train"
    test_dir = root / "test"
    exact_dir = root / "exact"
    test_dir.mkdir()
    exact_dir.mkdir()

    for name in CLASSES:
        base = rng.integers(30, 220, size=IMAGE_SIZE).astype(float)
        class_dir = train_dir / name
        class_dir.mkdir(parents=True)

        for i in range(N_TRAIN + N_TEST):
            img = np.clip(base + rng.normal(0, 8, size=IMAGE_SIZE), 0, 255)
            file_name = f"{name}_{i}.pgm"

            if i < N_TRAIN:
                _write_pgm(class_dir / file_name, img)
                shutil.copy(class_dir / file_name, exact_dir / file_name)
            else:
                _write_pgm(test_dir / file_name, img)

    return {
        "root": str(root),
        "train": str(train_dir),
        "test": str(test_dir),
        "exact": str(exact_dir),
        "n_train": len(CLASSES) * N_TRAIN,
        "n_test": len(CLASSES) * N_TEST,
        "n_classes": len(CLASSES),
        "n_pixels": IMAGE_SIZE[0] * IMAGE_SIZE[1],
    }


@pytest.fixture
def labeled_data():
    """
    Centered data matrix with 3 well separated classes of 4 samples each,
    50 dimensions, and the matching catalog entries.
    """
    rng = np.random.default_rng(1)
    n_dims, n_per_class, n_classes = 50, 4, 3

    columns = []
    entries = []
    for label in range(n_classes):
        center = rng.normal(0, 10, size=n_dims)
        for i in range(n_per_class):
            columns.append(center + rng.normal(0, 1, size=n_dims))
            entries.append(ImageEntry(label, os.path.join("train", f"c{label}", f"c{label}_{i}.pgm")))

    X = Matrix(np.column_stack(columns))
    X.subtract_columns(X.mean_column())

    return X, entries, n_classes
