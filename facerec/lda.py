"""
Linear discriminant analysis on top of PCA (Fisherfaces).

The centered images are first projected onto the leading n_opt1 eigenfaces,
which makes the within-class scatter matrix non-singular; the Fisher
directions are then the leading n_opt2 solutions of the generalized
eigen-problem S_b * v = lambda * S_w * v. The stored transform combines both
steps so it maps centered images directly:

    W_tr = (W_pca * W_fld)'
"""

import numpy as np
import config
from facerec.errors import FaceRecError, PreconditionError
from facerec.feature import FeatureLayer
from facerec.matrix import Matrix, eigen2, product
from facerec.pca import sort_eigenpairs


def scatter_matrices(P, labels):
    """
    Between-class and within-class scatter of the columns of P.

    Args:
        P: matrix of feature vectors, one per column
        labels: class id of every column

    Returns:
        tuple: (S_b, S_w)
    """
    labels = np.asarray(labels)
    mu = P.mean_column()

    S_b = Matrix.zeros(P.rows, P.rows)
    S_w = Matrix.zeros(P.rows, P.rows)

    for label in np.unique(labels):
        P_k = Matrix(P.data[:, labels == label])
        mu_k = P_k.mean_column()

        # within-class scatter: sum of (x - mu_k) * (x - mu_k)'
        P_k.subtract_columns(mu_k)
        S_w.add(product(P_k, P_k.transpose()))

        # between-class scatter: n_k * (mu_k - mu) * (mu_k - mu)'
        diff = mu_k.subtract(mu)
        S_b.add(product(diff, diff.transpose()).elem_mult(P_k.cols))

    return S_b, S_w


class LDALayer(FeatureLayer):
    """
    Fisherfaces layer.

    Attributes:
        pca: PCA layer whose eigenfaces are the starting basis
        n_opt1: number of eigenfaces to keep, -1 for N - c
        n_opt2: number of Fisher directions to keep, -1 for c - 1
        W_fld: Fisher directions in the reduced PCA space
    """

    name = "LDA"

    def __init__(self, pca, n_opt1=config.LDA_N_OPT1, n_opt2=config.LDA_N_OPT2):
        super().__init__()
        self.pca = pca
        self.n_opt1 = n_opt1
        self.n_opt2 = n_opt2
        self.W_fld = None

    def compute(self, X, entries, num_classes):
        if self.pca.W is None:
            raise FaceRecError("PCA must be computed before LDA")
        if len(entries) != X.cols:
            raise PreconditionError(f"{len(entries)} catalog entries for {X.cols} images")
        if num_classes < 2:
            raise PreconditionError(f"LDA needs at least 2 classes, got {num_classes}")

        N = X.cols
        n_opt1 = self.n_opt1 if self.n_opt1 > 0 else N - num_classes
        n_opt2 = self.n_opt2 if self.n_opt2 > 0 else num_classes - 1

        n_opt1 = min(n_opt1, self.pca.W.cols)
        if n_opt1 < 1:
            raise PreconditionError(f"LDA needs more images than classes (N = {N}, c = {num_classes})")
        n_opt2 = min(n_opt2, n_opt1)

        W_pca = self.pca.W.copy_columns(0, n_opt1)
        P = product(W_pca.transpose(), X)

        S_b, S_w = scatter_matrices(P, [entry.label for entry in entries])

        J_eval, J_evec = sort_eigenpairs(*eigen2(S_b, S_w))
        self.W_fld = J_evec.copy_columns(0, n_opt2)

        self.W_tr = product(W_pca, self.W_fld).transpose()
        return self.W_tr

    def save(self, stream):
        self.W_tr.fwrite(stream)
        self.W_fld.fwrite(stream)

    def load(self, stream):
        self.W_tr = Matrix.fread(stream)
        self.W_fld = Matrix.fread(stream)
