"""
Subspace face recognition package.

This package provides modules for:
- matrix: column-major Matrix type and linear algebra primitives
- distance: column vector distances and nearest-neighbor search
- feature: feature layer interface and the identity layer
- pca, lda, ica: PCA (eigenfaces), LDA (Fisherfaces) and ICA (Infomax) layers
- database: training, persistence and recognition
- catalog, image: corpus listing and image decoding
- metrics, utils: evaluation metrics, figures and layer files
- timing: nested stage timers
"""
