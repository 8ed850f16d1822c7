# facerec/utils.py
import os
import numpy as np
import matplotlib.pyplot as plt
import seaborn as sns
from sklearn.metrics import confusion_matrix
import config
from facerec.errors import DataIOError, FaceRecError


def _output_file(output_dir, name):
    output_dir = output_dir or config.OUTPUT_PATH
    os.makedirs(output_dir, exist_ok=True)
    return os.path.join(output_dir, name)


def _as_image(column, image_shape):
    """Reshape a pixel column to (h, w) or (h, w, c) for imshow, scaled to [0, 1]."""
    channels, h, w = image_shape
    img = np.asarray(column, dtype=float).reshape((h, w, channels))
    lo, hi = img.min(), img.max()
    img = (img - lo) / (hi - lo) if hi > lo else np.zeros_like(img)
    return img[:, :, 0] if channels == 1 else img


def plot_mean_face(db, output_dir=None):
    """La "faccia media" del training set."""
    if db.image_shape is None:
        raise FaceRecError("image shape is only known after training")

    plt.figure(figsize=(4, 4))
    plt.imshow(_as_image(db.mean_face.data[:, 0], db.image_shape), cmap='gray')
    plt.title("Mean Face")
    plt.axis('off')

    path = _output_file(output_dir, "mean_face.png")
    plt.savefig(path, bbox_inches='tight')
    plt.close()
    return path


def plot_eigenfaces(pca_layer, image_shape, n_top=config.N_EIGENFACES_DISPLAY, output_dir=None):
    """Visualizza le prime n componenti principali come immagini."""
    n_top = min(n_top, pca_layer.W_tr.rows)
    n_cols = 4
    n_rows = int(np.ceil(n_top / n_cols))

    plt.figure(figsize=(3 * n_cols, 3 * n_rows))
    for i in range(n_top):
        plt.subplot(n_rows, n_cols, i + 1)
        # every row of W_tr is an eigenface
        plt.imshow(_as_image(pca_layer.W_tr.data[i, :], image_shape), cmap='gray')
        plt.title(f"Eigenface {i+1}")
        plt.axis('off')
    plt.suptitle("Principal Components")

    path = _output_file(output_dir, "eigenfaces.png")
    plt.savefig(path, bbox_inches='tight')
    plt.close()
    return path


def plot_scree_plot(pca_layer, output_dir=None):
    """Grafico della varianza spiegata cumulativa."""
    plt.style.use(config.PLOT_STYLE)
    plt.figure(figsize=config.PLOT_FIGSIZE_MEDIUM)
    cum_variance = np.cumsum(pca_layer.explained_variance_ratio_)
    plt.plot(range(1, len(cum_variance) + 1), cum_variance, marker='o', linestyle='--')
    plt.xlabel("Number of Components")
    plt.ylabel("Cumulative Explained Variance")
    plt.title("Explained Variance (Scree Plot)")
    plt.grid(True)

    path = _output_file(output_dir, "scree_plot.png")
    plt.savefig(path, bbox_inches='tight')
    plt.close()
    return path


def plot_accuracy(results, output_dir=None):
    """Bar chart of the recognition accuracy of every algorithm."""
    names = [result.name for result in results]
    accuracies = [result.accuracy for result in results]

    plt.figure(figsize=config.PLOT_FIGSIZE_SMALL)
    ax = sns.barplot(x=names, y=accuracies, hue=names, palette=config.PLOT_COLORMAP, legend=False)
    for i, acc in enumerate(accuracies):
        ax.text(i, acc + 1, f"{acc:.1f}%", ha='center')
    plt.ylim(0, 105)
    plt.ylabel("Accuracy (%)")
    plt.title("Recognition Accuracy")

    path = _output_file(output_dir, "accuracy.png")
    plt.savefig(path, dpi=config.PLOT_DPI, bbox_inches='tight')
    plt.close()
    return path


def plot_confusion_matrix(y_true, y_pred, model_name, output_dir=None):
    """Visualizza la matrice di confusione con heatmap."""
    labels = np.unique(np.concatenate([np.asarray(y_true), np.asarray(y_pred)]))
    cm = confusion_matrix(y_true, y_pred, labels=labels)

    plt.figure(figsize=config.PLOT_FIGSIZE_SMALL)
    sns.heatmap(cm, annot=True, fmt='d', cmap='Blues', xticklabels=labels, yticklabels=labels)
    plt.title(f"Confusion Matrix: {model_name}")
    plt.ylabel('True Class')
    plt.xlabel('Predicted Class')

    path = _output_file(output_dir, f"cm_{model_name.lower().replace(' ', '_')}.png")
    plt.savefig(path, bbox_inches='tight')
    plt.close()
    return path


def save_layer(layer, path):
    """Salva un feature layer con tutte le sue matrici."""
    os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
    try:
        with open(path, 'wb') as f:
            layer.save(f)
    except OSError as e:
        raise DataIOError(f"cannot write layer file '{path}': {e}") from e
    return path


def load_layer(layer, path):
    """Read matrices written by save_layer into layer."""
    try:
        with open(path, 'rb') as f:
            layer.load(f)
    except DataIOError:
        raise
    except OSError as e:
        raise DataIOError(f"cannot read layer file '{path}': {e}") from e
    return layer
