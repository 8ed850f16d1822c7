"""
Independent component analysis on top of PCA (architecture I).

The leading eigenfaces are treated as mixed signals, one per row. They are
sphered with wz = 2 * inv(sqrtm(cov(x))) and unmixed with the Infomax rule
(logistic nonlinearity, natural gradient, mini-batches over shuffled pixels):

    w += L * (B * I + (1 - 2 * y) * u') * w,   u = w * x_t,   y = 1 / (1 + exp(-u))

With W_I = w * wz the rows of W_I * x are statistically independent basis
images, and the coefficients of an image in that basis are
inv(W_I)' * W_pca' * x, so the stored transform is

    W_tr = (W_pca * inv(W_I))'
"""

import numpy as np
import config
from facerec.errors import FaceRecError, NumericalError
from facerec.feature import FeatureLayer
from facerec.matrix import Matrix, product


class ICALayer(FeatureLayer):
    """
    Infomax ICA layer.

    Attributes:
        pca: PCA layer whose eigenfaces are unmixed
        n_components: number of eigenfaces to unmix, None for all of them
        W_I: unmixing matrix including the sphering step
        n_iterations_: number of sweeps run by the last compute
    """

    name = "ICA"

    def __init__(self, pca, n_components=config.N_COMPONENTS_ICA,
                 learning_rate=config.ICA_LEARNING_RATE, block_size=config.ICA_BLOCK_SIZE,
                 max_iterations=config.ICA_MAX_ITERATIONS, tolerance=config.ICA_TOLERANCE,
                 anneal=config.ICA_ANNEAL, random_state=config.RANDOM_STATE, verbose=False):
        super().__init__()
        self.pca = pca
        self.n_components = n_components
        self.learning_rate = learning_rate
        self.block_size = block_size
        self.max_iterations = max_iterations
        self.tolerance = tolerance
        self.anneal = anneal
        self.random_state = random_state
        self.verbose = verbose
        self.W_I = None
        self.n_iterations_ = 0

    def compute(self, X, entries=None, num_classes=None):
        if self.pca.W is None:
            raise FaceRecError("PCA must be computed before ICA")

        n = self.pca.W.cols
        if self.n_components is not None:
            n = min(n, self.n_components)

        W_pca = self.pca.W.copy_columns(0, n)

        # eigenfaces as rows, each with zero mean
        x = W_pca.transpose()
        x.subtract_columns(x.mean_column())

        wz = x.covariance().sqrtm().inverse().elem_mult(2)
        w = self.runica(product(wz, x))

        self.W_I = product(w, wz)
        self.W_tr = product(W_pca, self.W_I.inverse()).transpose()
        return self.W_tr

    def runica(self, x):
        """
        Infomax unmixing matrix for the sphered signals in the rows of x.

        Returns:
            Matrix: n x n weight matrix w
        """
        n, P = x.shape
        B = min(self.block_size, P)
        rng = np.random.default_rng(self.random_state)

        w = Matrix.identity(n)
        BI = Matrix.identity(n).elem_mult(B)
        L = self.learning_rate

        self.n_iterations_ = 0

        with np.errstate(over='ignore'):
            for iteration in range(self.max_iterations):
                w_old = w.copy()
                perm = rng.permutation(P)

                for t in range(0, P - B + 1, B):
                    u = product(w, Matrix(x.data[:, perm[t:t + B]]))

                    # 1 - 2 * logistic(u)
                    y = u.copy().elem_negate().elem_exp().elem_add(1).elem_divide_by(1)
                    y.elem_mult(-2).elem_add(1)

                    dw = product(product(y, u.transpose()).add(BI), w).elem_mult(L)
                    w.add(dw)

                if not np.all(np.isfinite(w.data)):
                    raise NumericalError("ICA weights diverged, lower the learning rate")

                change = w_old.subtract(w).norm() ** 2
                self.n_iterations_ = iteration + 1

                if self.verbose:
                    print(f"  ICA sweep {iteration + 1}: change = {change:.3e}, L = {L:.2e}")

                if change < self.tolerance:
                    break

                L *= self.anneal

        return w

    def save(self, stream):
        self.W_tr.fwrite(stream)
        self.W_I.fwrite(stream)

    def load(self, stream):
        self.W_tr = Matrix.fread(stream)
        self.W_I = Matrix.fread(stream)

    def describe(self):
        if self.W_tr is None:
            return super().describe()
        return f"ICA: {self.W_tr.cols} -> {self.W_tr.rows} ({self.n_iterations_} sweeps)"
