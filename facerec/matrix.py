"""
Dense matrix type and the linear algebra primitives used by the recognition
pipeline.

A Matrix stores rows x cols elements of config.PRECISION in column-major
(Fortran) order. The heavy lifting is delegated to numpy: matrix products
go through np.dot, inversion through LAPACK's LU routines (np.linalg.inv) and
eigen-decomposition through the general eigen-solver (np.linalg.eig).

Conventions:
- Images are stored as column vectors, one column per image.
- Methods named elem_* and the add/subtract family modify the matrix in place
  and return it, so calls can be chained.
- Everything else returns a new Matrix that owns fresh storage.
- Shape violations raise DimensionError, numerical degeneracy raises
  NumericalError / SingularMatrixError and truncated files raise DataIOError.
"""

import numpy as np
import config
from facerec.errors import (
    DataIOError, DimensionError, NumericalError, PreconditionError, SingularMatrixError
)


class Matrix:
    """
    Column-major dense matrix.

    Attributes:
        data: numpy array of shape (rows, cols), Fortran ordered
    """

    def __init__(self, data):
        """
        Build a matrix from any array-like, copying it.

        A flat sequence becomes a 1 x n row vector, as in MATLAB.
        """
        self.data = np.array(data, dtype=config.PRECISION, order='F', ndmin=2)

        if self.data.ndim != 2:
            raise DimensionError(f"matrix data must be 2-D, got {self.data.ndim} dimensions")

    @classmethod
    def _wrap(cls, array):
        M = cls.__new__(cls)
        M.data = np.asfortranarray(array, dtype=config.PRECISION)
        return M

    @classmethod
    def initialize(cls, rows, cols):
        """Allocate a matrix without initializing its elements."""
        _check_shape(rows, cols)
        return cls._wrap(np.empty((rows, cols), dtype=config.PRECISION, order='F'))

    @classmethod
    def zeros(cls, rows, cols):
        _check_shape(rows, cols)
        return cls._wrap(np.zeros((rows, cols), dtype=config.PRECISION, order='F'))

    @classmethod
    def ones(cls, rows, cols):
        _check_shape(rows, cols)
        return cls._wrap(np.ones((rows, cols), dtype=config.PRECISION, order='F'))

    @classmethod
    def identity(cls, rows, cols=None):
        if cols is not None and cols != rows:
            raise DimensionError(f"identity matrix must be square, got {rows}x{cols}")
        _check_shape(rows, rows)
        return cls._wrap(np.eye(rows, dtype=config.PRECISION, order='F'))

    @classmethod
    def random(cls, rows, cols, rng=None):
        """Matrix of standard normal samples (MATLAB randn)."""
        _check_shape(rows, cols)
        if rng is None:
            rng = np.random.default_rng(config.RANDOM_STATE)
        return cls._wrap(rng.standard_normal((rows, cols)))

    @classmethod
    def diagonalize(cls, v):
        """Place the elements of a row or column vector on a diagonal."""
        if v.rows != 1 and v.cols != 1:
            raise DimensionError(f"diagonalize expects a vector, got {v.shape_str()}")
        return cls._wrap(np.diag(v.data.ravel(order='F')))

    @property
    def rows(self):
        return self.data.shape[0]

    @property
    def cols(self):
        return self.data.shape[1]

    @property
    def shape(self):
        return self.data.shape

    def shape_str(self):
        return f"{self.rows}x{self.cols}"

    def __getitem__(self, key):
        return self.data[key]

    def __setitem__(self, key, value):
        self.data[key] = value

    def __repr__(self):
        return f"Matrix({self.rows}x{self.cols})"

    def __matmul__(self, other):
        return product(self, other)

    # ------------------------------------------------------------------
    # copies and slices
    # ------------------------------------------------------------------

    def copy(self):
        return self.copy_columns(0, self.cols) if self.cols > 0 else Matrix.zeros(self.rows, 0)

    def copy_columns(self, begin, end):
        """
        Copy the columns [begin, end) into a new matrix.

        Args:
            begin: first column index, inclusive
            end: last column index, exclusive

        Returns:
            Matrix: rows x (end - begin) copy, never a view
        """
        if not 0 <= begin < end <= self.cols:
            raise DimensionError(
                f"invalid column range [{begin}, {end}) for matrix with {self.cols} columns"
            )
        return Matrix._wrap(self.data[:, begin:end].copy(order='F'))

    def assign_column(self, i, B, j):
        """Copy column j of B into column i of this matrix."""
        if self.rows != B.rows:
            raise DimensionError(f"cannot assign a column of {B.shape_str()} into {self.shape_str()}")
        _check_column(self, i)
        _check_column(B, j)
        self.data[:, i] = B.data[:, j]
        return self

    # ------------------------------------------------------------------
    # text and binary serialization
    # ------------------------------------------------------------------

    def fprint(self, stream):
        """Write the matrix as text: a 'rows cols' header, then one line per row."""
        stream.write(f"{self.rows} {self.cols}\n")
        for i in range(self.rows):
            stream.write("".join(f"{value:.17g} " for value in self.data[i, :]))
            stream.write("\n")

    @classmethod
    def fscan(cls, stream):
        """
        Read one matrix written by fprint.

        Lines are consumed only up to the end of the record, so several
        matrices can be read from the same stream one after another.
        """
        tokens = _read_tokens(stream, 2, [])
        if len(tokens) < 2:
            raise DataIOError("missing matrix header in text stream")

        try:
            rows, cols = int(tokens[0]), int(tokens[1])
        except ValueError as e:
            raise DataIOError(f"invalid matrix header '{tokens[0]} {tokens[1]}'") from e
        if rows < 0 or cols < 0:
            raise DataIOError(f"corrupt matrix header: {rows}x{cols}")

        n = rows * cols
        values = _read_tokens(stream, n, tokens[2:])
        if len(values) < n:
            raise DataIOError(f"expected {n} matrix elements, found {len(values)}")
        if len(values) > n:
            raise DataIOError(f"{len(values) - n} extra elements after {rows}x{cols} matrix record")

        try:
            data = np.array([float(v) for v in values], dtype=config.PRECISION)
        except ValueError as e:
            raise DataIOError(f"invalid matrix element: {e}") from e

        return cls._wrap(data.reshape((rows, cols), order='C'))

    def fwrite(self, stream):
        """Write the matrix as [int32 rows][int32 cols][rows*cols floats, column-major]."""
        header = np.array([self.rows, self.cols], dtype=config.BINARY_INDEX)
        stream.write(header.tobytes())
        stream.write(self.data.astype(config.BINARY_PRECISION).tobytes(order='F'))

    @classmethod
    def fread(cls, stream):
        """Read one matrix record written by fwrite."""
        index_size = np.dtype(config.BINARY_INDEX).itemsize
        elem_size = np.dtype(config.BINARY_PRECISION).itemsize

        header = stream.read(2 * index_size)
        if len(header) < 2 * index_size:
            raise DataIOError("truncated matrix header")

        rows, cols = (int(x) for x in np.frombuffer(header, dtype=config.BINARY_INDEX))
        if rows < 0 or cols < 0:
            raise DataIOError(f"corrupt matrix header: {rows}x{cols}")

        n_bytes = rows * cols * elem_size
        payload = stream.read(n_bytes)
        if len(payload) < n_bytes:
            raise DataIOError(
                f"truncated matrix record: expected {n_bytes} bytes for {rows}x{cols}, got {len(payload)}"
            )

        data = np.frombuffer(payload, dtype=config.BINARY_PRECISION).reshape((rows, cols), order='F')
        return cls._wrap(data.astype(config.PRECISION, order='F'))

    # ------------------------------------------------------------------
    # images
    # ------------------------------------------------------------------

    def image_read(self, col, image):
        """Load the pixels of an image into a column."""
        if self.rows != image.size:
            raise DimensionError(
                f"image of {image.channels}x{image.height}x{image.width} does not fit {self.rows} rows"
            )
        _check_column(self, col)
        self.data[:, col] = image.pixels
        return self

    def image_write(self, col, image):
        """Store a column into the pixel buffer of an image, clipped to [0, 255]."""
        if self.rows != image.size:
            raise DimensionError(
                f"image of {image.channels}x{image.height}x{image.width} does not fit {self.rows} rows"
            )
        _check_column(self, col)
        image.pixels = np.clip(self.data[:, col], 0, 255).astype(np.uint8)
        return self

    # ------------------------------------------------------------------
    # statistics
    # ------------------------------------------------------------------

    def mean_column(self):
        """Average of all columns, as a rows x 1 vector."""
        if self.cols == 0:
            raise DimensionError("cannot take the mean column of a matrix without columns")
        return Matrix._wrap(self.data.mean(axis=1).reshape((self.rows, 1)))

    def mean_row(self):
        """Average of all rows, as a 1 x cols vector."""
        if self.rows == 0:
            raise DimensionError("cannot take the mean row of a matrix without rows")
        return Matrix._wrap(self.data.mean(axis=0).reshape((1, self.cols)))

    def covariance(self):
        """
        Covariance of the columns as observations.

        Returns:
            Matrix: rows x rows, A * A' / max(cols - 1, 1) with A the
            mean-centered copy of this matrix
        """
        A = self.copy()
        A.subtract_columns(A.mean_column())

        C = product(A, A.transpose())
        c = self.cols - 1 if self.cols > 1 else 1
        return C.elem_mult(1.0 / c)

    def norm(self):
        """Euclidean norm of a vector, Frobenius norm of a matrix."""
        return float(np.linalg.norm(self.data))

    def sum_columns(self):
        """Sum of each column, as a 1 x cols row vector."""
        return Matrix._wrap(self.data.sum(axis=0).reshape((1, self.cols)))

    def sum_rows(self):
        """Sum of each row, as a rows x 1 column vector."""
        return Matrix._wrap(self.data.sum(axis=1).reshape((self.rows, 1)))

    def find_nonzeros(self):
        """
        Row indices (1-based) of the non-zero elements, scanned row by row.

        The result is a (rows * cols) x 1 column; entries past the number of
        non-zero elements stay zero.
        """
        R = Matrix.zeros(self.rows * self.cols, 1)
        row_idx, _ = np.nonzero(self.data)
        R.data[:len(row_idx), 0] = row_idx + 1
        return R

    # ------------------------------------------------------------------
    # decompositions
    # ------------------------------------------------------------------

    def transpose(self):
        return Matrix._wrap(self.data.T.copy(order='F'))

    def inverse(self):
        """
        Inverse of a square matrix through its LU factorization.

        Raises:
            DimensionError: if the matrix is not square
            SingularMatrixError: if the matrix is singular to working precision
        """
        _check_square(self, "inverse")
        if self.rows == 0:
            return Matrix.zeros(0, 0)

        if not np.all(np.isfinite(self.data)):
            raise SingularMatrixError("cannot invert a matrix with non-finite elements")

        if np.linalg.cond(self.data) * np.finfo(config.PRECISION).eps >= 1.0:
            raise SingularMatrixError(f"{self.shape_str()} matrix is singular to working precision")

        try:
            M_inv = np.linalg.inv(self.data)
        except np.linalg.LinAlgError as e:
            raise SingularMatrixError(str(e)) from e

        if not np.all(np.isfinite(M_inv)):
            raise SingularMatrixError("inverse has non-finite elements")

        return Matrix._wrap(M_inv)

    def eigen(self):
        """
        Real eigenvalues and right eigenvectors of a symmetric matrix.

        Only symmetric input is supported: its eigenvalues are real, so the
        imaginary parts returned by the general solver are dropped.

        Returns:
            tuple: (M_eval, M_evec), a rows x 1 column of eigenvalues and a
                   rows x rows matrix whose i-th column belongs to the i-th
                   eigenvalue

        Raises:
            DimensionError: if the matrix is not square
            PreconditionError: if the matrix is not symmetric
        """
        _check_square(self, "eigen")
        _check_symmetric(self)

        if self.rows == 0:
            return Matrix.zeros(0, 1), Matrix.zeros(0, 0)

        try:
            w, v = np.linalg.eig(self.data)
        except np.linalg.LinAlgError as e:
            raise NumericalError(f"eigen-decomposition did not converge: {e}") from e

        M_eval = Matrix._wrap(np.real(w).reshape((self.rows, 1)))
        M_evec = Matrix._wrap(np.real(v))

        return M_eval, M_evec

    def sqrtm(self):
        """
        Principal square root X, with X * X = M.

        Computed as evec * diag(sqrt(eval)) * evec^-1. Eigenvalues that are
        negative only by rounding are clamped to zero.
        """
        _check_square(self, "sqrtm")

        M_eval, M_evec = self.eigen()

        lambdas = M_eval.data[:, 0]
        scale = max(np.abs(lambdas).max(), 1.0) if lambdas.size else 1.0
        if np.any(lambdas < -config.SYMMETRY_TOL * scale):
            raise NumericalError("matrix has negative eigenvalues, its principal square root is not real")

        B = M_evec.copy()
        B.data *= np.sqrt(np.clip(lambdas, 0, None))

        return product(B, M_evec.inverse())

    # ------------------------------------------------------------------
    # in-place arithmetic
    # ------------------------------------------------------------------

    def add(self, B):
        _check_same_shape(self, B, "add")
        self.data += B.data
        return self

    def subtract(self, B):
        _check_same_shape(self, B, "subtract")
        self.data -= B.data
        return self

    def subtract_columns(self, a):
        """Subtract a column vector from every column (M - a * 1_N')."""
        if a.rows != self.rows or a.cols != 1:
            raise DimensionError(f"cannot subtract {a.shape_str()} from the columns of {self.shape_str()}")
        self.data -= a.data
        return self

    def subtract_rows(self, a):
        """Subtract a row vector from every row (M - 1_N * a)."""
        if a.cols != self.cols or a.rows != 1:
            raise DimensionError(f"cannot subtract {a.shape_str()} from the rows of {self.shape_str()}")
        self.data -= a.data
        return self

    def elem_mult(self, c):
        self.data *= c
        return self

    def elem_add(self, x):
        self.data += x
        return self

    def elem_pow(self, num):
        self.data **= num
        return self

    def elem_divide_by(self, num):
        """Replace every element x with num / x."""
        self.data[:] = num / self.data
        return self

    def elem_acos(self):
        self.data[:] = np.arccos(self.data)
        return self

    def elem_sqrt(self):
        self.data[:] = np.sqrt(self.data)
        return self

    def elem_exp(self):
        self.data[:] = np.exp(self.data)
        return self

    def elem_negate(self):
        self.data[:] = -self.data
        return self

    def elem_truncate(self):
        self.data[:] = np.trunc(self.data)
        return self

    def elem_apply(self, func):
        """Apply a scalar or vectorized function to every element."""
        self.data[:] = np.vectorize(func, otypes=[config.PRECISION])(self.data)
        return self

    def normalize(self):
        """Rescale to [0, 1] using the global minimum and maximum."""
        lo, hi = self.data.min(), self.data.max()
        if hi == lo:
            raise NumericalError("cannot normalize a constant matrix")
        self.data[:] = (self.data - lo) / (hi - lo)
        return self

    # ------------------------------------------------------------------
    # column manipulation
    # ------------------------------------------------------------------

    def flip_columns(self):
        """Mirror the columns left to right (MATLAB fliplr)."""
        self.data[:] = self.data[:, ::-1]
        return self

    def shuffle_columns(self, rng=None):
        if rng is None:
            rng = np.random.default_rng(config.RANDOM_STATE)
        self.data[:] = self.data[:, rng.permutation(self.cols)]
        return self

    def reorder_columns(self, V):
        """
        New matrix whose j-th column is column V[j] of this matrix.

        V must be a 1 x cols row of column indices. It is not checked for
        duplicates.
        """
        if V.rows != 1 or V.cols != self.cols:
            raise DimensionError(f"reorder vector must be 1x{self.cols}, got {V.shape_str()}")

        order = V.data[0, :].astype(int)
        if order.size and (order.min() < 0 or order.max() >= self.cols):
            raise DimensionError(f"column index out of range for matrix with {self.cols} columns")

        return Matrix._wrap(self.data[:, order])

    def reshape(self, rows, cols):
        """
        Change the dimensions while keeping the row-major element order.
        """
        if rows * cols != self.rows * self.cols:
            raise DimensionError(f"cannot reshape {self.shape_str()} into {rows}x{cols}")
        return Matrix._wrap(self.data.reshape((rows, cols), order='C').copy(order='F'))


def product(A, B):
    """
    Matrix product A * B.

    Raises:
        DimensionError: if A.cols != B.rows
    """
    if A.cols != B.rows:
        raise DimensionError(f"cannot multiply {A.shape_str()} by {B.shape_str()}")

    C = Matrix.zeros(A.rows, B.cols)
    C.data += np.dot(A.data, B.data)

    return C


def eigen2(A, B):
    """
    Generalized eigenvalues and eigenvectors, A * v = lambda * B * v.

    A must be symmetric and B symmetric positive definite. The problem is
    reduced to the symmetric matrix B^-1/2 * A * B^-1/2 whose eigenvectors are
    mapped back through B^-1/2.

    Returns:
        tuple: (J_eval, J_evec) as in Matrix.eigen
    """
    _check_square(A, "eigen2")
    _check_same_shape(A, B, "eigen2")

    B_isqrt = B.sqrtm().inverse()

    J = product(product(B_isqrt, A), B_isqrt)
    J.add(J.transpose()).elem_mult(0.5)

    J_eval, V = J.eigen()
    J_evec = product(B_isqrt, V)

    return J_eval, J_evec


def _read_tokens(stream, count, tokens):
    """Extend tokens with whole lines of stream until it holds at least count tokens."""
    while len(tokens) < count:
        line = stream.readline()
        if not line:
            break
        tokens.extend(line.split())
    return tokens


def _check_shape(rows, cols):
    if rows < 0 or cols < 0:
        raise DimensionError(f"invalid matrix shape {rows}x{cols}")


def _check_column(M, j):
    if not 0 <= j < M.cols:
        raise DimensionError(f"column {j} out of range for matrix with {M.cols} columns")


def _check_square(M, op):
    if M.rows != M.cols:
        raise DimensionError(f"{op} requires a square matrix, got {M.shape_str()}")


def _check_same_shape(A, B, op):
    if A.shape != B.shape:
        raise DimensionError(f"{op}: shape mismatch {A.shape_str()} vs {B.shape_str()}")


def _check_symmetric(M):
    if M.rows == 0:
        return
    scale = max(np.abs(M.data).max(), np.finfo(config.PRECISION).tiny)
    if np.abs(M.data - M.data.T).max() > config.SYMMETRY_TOL * scale:
        raise PreconditionError("eigen-decomposition is only supported for symmetric matrices")
