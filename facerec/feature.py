"""
Feature layers: linear projections from centered image space into a
feature space.

Every layer implements the same contract:
- compute(X, entries, num_classes): learn the transform from the centered
  training matrix X (one image per column) and its catalog entries, and
  return it as W_tr (features x pixels)
- project(X): map column vectors into the feature space, W_tr * X
- save(stream) / load(stream): write/read the matrices the layer owns, in a
  fixed order, with Matrix.fwrite / Matrix.fread
- describe(): short description for diagnostics
"""

from facerec.matrix import Matrix, product
from facerec.errors import FaceRecError


class FeatureLayer:
    """
    Base class of all feature layers.

    Attributes:
        name: algorithm name used in reports
        W_tr: transform matrix, None until computed or loaded
    """

    name = None

    def __init__(self):
        self.W_tr = None

    def compute(self, X, entries, num_classes):
        raise NotImplementedError

    def project(self, X):
        if self.W_tr is None:
            raise FaceRecError(f"{self.name} layer has no transform; compute or load it first")
        return product(self.W_tr, X)

    def save(self, stream):
        self.W_tr.fwrite(stream)

    def load(self, stream):
        self.W_tr = Matrix.fread(stream)

    def describe(self):
        if self.W_tr is None:
            return f"{self.name} (not computed)"
        return f"{self.name}: {self.W_tr.cols} -> {self.W_tr.rows}"

    def print(self):
        print(self.describe())


class IdentityLayer(FeatureLayer):
    """
    Pass-through layer, the baseline that matches raw centered images.

    compute returns None instead of allocating a large identity matrix, and
    project returns a copy of its input. The Database does not store raw
    training images in its model file, so this layer is meant for library
    callers that keep the centered training matrix themselves and pair it
    with nearest_neighbor.
    """

    name = "Identity"

    def compute(self, X, entries, num_classes):
        return None

    def project(self, X):
        return X.copy()

    def save(self, stream):
        pass

    def load(self, stream):
        pass

    def describe(self):
        return "Identity"
