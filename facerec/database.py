"""
The face database: trains the subspace models, saves and loads them, and
recognizes test images by nearest-neighbor search.

Model files:
- training set (text): one '<class> <name>' line per training image
- training data (binary): a sequence of Matrix.fwrite records,

      mean face
      PCA transform, PCA projection      if any algorithm is enabled
      LDA transform, LDA projection      if LDA is enabled
      ICA transform, ICA projection      if ICA is enabled

The file does not record which blocks are present; a database must be
loaded with the same algorithm flags it was saved with.
"""

import config
from facerec.catalog import (
    count_classes, get_directory, get_directory_rec, is_same_class,
    read_catalog, rem_base_dir, write_catalog
)
from facerec.distance import dist_COS, dist_L2, nearest_neighbor
from facerec.errors import DataIOError, DimensionError, FaceRecError
from facerec.ica import ICALayer
from facerec.image import Image
from facerec.lda import LDALayer
from facerec.matrix import Matrix
from facerec.pca import PCALayer
from facerec.timing import timed


def get_image_matrix(entries):
    """
    Map a list of images to the columns of a matrix.

    The matrix has one row per pixel value and one column per image; all
    images must have the same size.

    Args:
        entries: catalog entries (or anything with a .name path)

    Returns:
        tuple: (T, image) with T the image matrix and image the first image,
               whose channels/height/width describe every column
    """
    if not entries:
        raise DimensionError("cannot build an image matrix from an empty catalog")

    image = Image().read(entries[0].name)
    first = Image(image.channels, image.height, image.width)

    T = Matrix.initialize(image.size, len(entries))
    T.image_read(0, image)

    for i in range(1, len(entries)):
        image.read(entries[i].name)
        T.image_read(i, image)

    return T, first


class Algorithm:
    """
    One recognition algorithm of a database: its feature layer, the
    distance used for matching and the projected training images.
    """

    def __init__(self, name, enabled, layer, dist_func):
        self.name = name
        self.enabled = enabled
        self.layer = layer
        self.dist_func = dist_func
        self.P = None


class RecognitionResult:
    """
    Outcome of recognizing a test set with one algorithm.

    Attributes:
        name: algorithm name
        num_correct: number of test images matched to a training image of the same class
        num_test: number of test images
        matches: list of (test image, matched training image) pairs
    """

    def __init__(self, name):
        self.name = name
        self.num_correct = 0
        self.num_test = 0
        self.matches = []

    @property
    def accuracy(self):
        """Percentage of correctly matched test images."""
        if self.num_test == 0:
            return 0.0
        return 100.0 * self.num_correct / self.num_test

    def __repr__(self):
        return f"RecognitionResult({self.name}: {self.num_correct}/{self.num_test})"


class Database:
    """
    Trained face recognition model.

    Attributes:
        entries: training catalog, in image matrix column order
        num_classes: number of training classes
        num_images: number of training images
        num_dimensions: number of pixel values per image
        mean_face: mean training image as a column vector
        image_shape: (channels, height, width) of the training images, known after train
        algorithms: PCA, LDA and ICA, in model file order
    """

    def __init__(self, pca=False, lda=False, ica=False, n_opt1=config.LDA_N_OPT1,
                 n_opt2=config.LDA_N_OPT2, verbose=config.VERBOSE):
        self.verbose = verbose

        self.entries = []
        self.num_classes = 0
        self.num_images = 0
        self.num_dimensions = 0
        self.mean_face = None
        self.image_shape = None

        pca_layer = PCALayer()
        self.algorithms = [
            Algorithm("PCA", pca, pca_layer, dist_L2),
            Algorithm("LDA", lda, LDALayer(pca_layer, n_opt1, n_opt2), dist_L2),
            Algorithm("ICA", ica, ICALayer(pca_layer, verbose=verbose), dist_COS)
        ]

    @property
    def pca(self):
        return self.algorithms[0].enabled

    @property
    def lda(self):
        return self.algorithms[1].enabled

    @property
    def ica(self):
        return self.algorithms[2].enabled

    def _blocks(self):
        # PCA is stored whenever any algorithm is enabled since LDA and ICA build on it
        pca, lda, ica = self.algorithms
        blocks = []
        if pca.enabled or lda.enabled or ica.enabled:
            blocks.append(pca)
        blocks.extend(algo for algo in (lda, ica) if algo.enabled)
        return blocks

    def _check_empty(self):
        if self.mean_face is not None:
            raise FaceRecError("database is already trained or loaded")

    def _check_ready(self):
        if self.mean_face is None:
            raise FaceRecError("database has not been trained or loaded")

    def train(self, path):
        """
        Train the database with the images under path, one sub-directory per class.

        Args:
            path: directory of training images
        """
        self._check_empty()

        with timed("Training"):
            entries, num_classes = get_directory_rec(path)

            # compute mean-subtracted image matrix X
            X, image = get_image_matrix(entries)

            mean_face = X.mean_column()
            X.subtract_columns(mean_face)

            if self.verbose:
                print(f"Training set: {X.cols} images, {num_classes} classes, {X.rows} dimensions")

            for algo in self._blocks():
                if self.verbose:
                    print(f"Computing {algo.name} representation...")

                with timed(algo.name):
                    algo.layer.compute(X, entries, num_classes)
                    algo.P = algo.layer.project(X)

                if self.verbose:
                    algo.layer.print()

        self.entries = entries
        self.num_classes = num_classes
        self.num_images = X.cols
        self.num_dimensions = X.rows
        self.image_shape = (image.channels, image.height, image.width)
        self.mean_face = mean_face

    def save(self, path_tset, path_tdata):
        """
        Save the database to the file system.

        Args:
            path_tset: path of the training set (catalog) file
            path_tdata: path of the binary training data file
        """
        self._check_ready()
        write_catalog(path_tset, self.entries)

        try:
            with open(path_tdata, 'wb') as f:
                self.mean_face.fwrite(f)

                for algo in self._blocks():
                    algo.layer.W_tr.fwrite(f)
                    algo.P.fwrite(f)
        except OSError as e:
            raise DataIOError(f"cannot write training data '{path_tdata}': {e}") from e

    def load(self, path_tset, path_tdata):
        """
        Load a database saved with the same algorithm flags.

        Raises:
            DataIOError: if a file is missing, truncated or inconsistent
        """
        self._check_empty()

        try:
            with open(path_tdata, 'rb') as f:
                mean_face = Matrix.fread(f)

                for algo in self._blocks():
                    algo.layer.W_tr = Matrix.fread(f)
                    algo.P = Matrix.fread(f)

                if f.read(1):
                    raise DataIOError(f"'{path_tdata}' has trailing data; were other algorithms enabled when it was saved?")
        except DataIOError:
            raise
        except OSError as e:
            raise DataIOError(f"cannot read training data '{path_tdata}': {e}") from e

        entries = read_catalog(path_tset)
        blocks = self._blocks()
        num_images = blocks[0].P.cols if blocks else len(entries)

        if len(entries) != num_images:
            raise DataIOError(f"'{path_tset}' lists {len(entries)} images, training data has {num_images}")

        for algo in blocks:
            if algo.layer.W_tr.cols != mean_face.rows or algo.P.cols != num_images:
                raise DataIOError(f"inconsistent {algo.name} block in '{path_tdata}'")

        self.entries = entries
        self.num_classes = count_classes(entries)
        self.num_images = num_images
        self.num_dimensions = mean_face.rows
        self.mean_face = mean_face

    def project(self, X):
        """
        Project mean-subtracted column vectors with every enabled algorithm.

        Returns:
            dict: algorithm name -> projected matrix
        """
        self._check_ready()
        return {algo.name: algo.layer.project(X) for algo in self.algorithms if algo.enabled}

    def recognize(self, path):
        """
        Test a directory of images against the database.

        Every image is centered with the mean face, projected with each
        enabled algorithm and matched to its nearest training image.

        Args:
            path: directory of test images named '{class}_{index}.ext'

        Returns:
            list: RecognitionResult per enabled algorithm
        """
        self._check_ready()

        algorithms = [algo for algo in self.algorithms if algo.enabled]
        results = [RecognitionResult(algo.name) for algo in algorithms]

        with timed("Recognition"):
            self._recognize_images(get_directory(path), algorithms, results)

        for result in results:
            if self.verbose:
                print(f"{result.name}: {result.num_correct} / {result.num_test} matched, {result.accuracy:.2f}%")
            else:
                print(f"{result.accuracy:.2f}")

        return results

    def _recognize_images(self, image_names, algorithms, results):
        image = Image()
        T_i = Matrix.initialize(self.num_dimensions, 1)

        for image_name in image_names:
            image.read(image_name)
            T_i.image_read(0, image)
            T_i.subtract(self.mean_face)

            if self.verbose:
                print(f"test image: '{rem_base_dir(image_name)}'")

            for algo, result in zip(algorithms, results):
                P_test = algo.layer.project(T_i)
                rec_index = nearest_neighbor(algo.P, P_test, algo.dist_func)
                rec_name = self.entries[rec_index].name

                result.num_test += 1
                result.matches.append((image_name, rec_name))
                if is_same_class(rec_name, image_name):
                    result.num_correct += 1

                if self.verbose:
                    print(f"       {algo.name}: '{rem_base_dir(rec_name)}'")

            if self.verbose:
                print()

    def nearest(self, T_i, name):
        """
        Index of the training image closest to a centered column vector,
        using the algorithm called name.
        """
        self._check_ready()
        for algo in self.algorithms:
            if algo.name == name and algo.enabled:
                return nearest_neighbor(algo.P, algo.layer.project(T_i), algo.dist_func)
        raise FaceRecError(f"algorithm {name} is not enabled")

