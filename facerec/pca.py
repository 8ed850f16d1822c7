# facerec/pca.py
import numpy as np
import config
from facerec.errors import NumericalError, PreconditionError
from facerec.feature import FeatureLayer
from facerec.matrix import Matrix, product


def sort_eigenpairs(M_eval, M_evec):
    """Reorder eigenvalues and eigenvectors by descending eigenvalue."""
    order = np.argsort(-M_eval.data[:, 0], kind='stable')
    V = Matrix([order])
    return M_eval.transpose().reorder_columns(V).transpose(), M_evec.reorder_columns(V)


class PCALayer(FeatureLayer):
    name = "PCA"

    def __init__(self, n_components=config.N_COMPONENTS_PCA):
        super().__init__()
        self.n_components = n_components
        self.W = None
        self.D = None
        self.total_variance_ = None

    def compute(self, X, entries=None, num_classes=None):
        # eigenfaces from the N x N surrogate X' * X instead of the D x D covariance
        N = X.cols
        if N < 2:
            raise PreconditionError(f"PCA needs at least 2 training images, got {N}")

        L = product(X.transpose(), X)
        L_eval, L_evec = sort_eigenpairs(*L.eigen())

        evals = L_eval.data[:, 0]
        tol = config.PCA_EIGENVALUE_TOL * max(evals[0], np.finfo(config.PRECISION).tiny)

        n = min(int(np.sum(evals > tol)), N - 1)
        if self.n_components is not None:
            n = min(n, self.n_components)
        if n < 1:
            raise NumericalError("training images have no variance")

        self.W = product(X, L_evec.copy_columns(0, n))
        self.W.data /= np.linalg.norm(self.W.data, axis=0)
        self.D = Matrix(evals[:n].reshape(n, 1))
        self.total_variance_ = float(np.sum(evals[evals > 0]))

        self.W_tr = self.W.transpose()
        return self.W_tr

    @property
    def explained_variance_ratio_(self):
        evals = self.D.data[:, 0]
        total = self.total_variance_ if self.total_variance_ else np.sum(evals)
        return evals / total

    def reconstruct(self, P):
        """Map projected vectors back to centered image space, W * P."""
        return product(self.W_tr.transpose(), P)

    def save(self, stream):
        self.W_tr.fwrite(stream)
        self.D.fwrite(stream)

    def load(self, stream):
        self.W_tr = Matrix.fread(stream)
        self.D = Matrix.fread(stream)
        self.W = self.W_tr.transpose()

    def describe(self):
        if self.W_tr is None or self.D is None:
            return super().describe()
        variance = np.sum(self.explained_variance_ratio_) * 100
        return f"PCA: {self.W_tr.cols} -> {self.W_tr.rows} ({variance:.2f}% variance)"
