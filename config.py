# config.py
import os
import numpy as np

RANDOM_STATE = 42
VERBOSE = False

# element type of every Matrix; the binary model format stores it little-endian
PRECISION = np.float64
BINARY_PRECISION = '<f8'
BINARY_INDEX = '<i4'

IMAGE_EXTENSIONS = ('.ppm', '.pgm', '.pbm', '.png', '.jpg', '.jpeg', '.bmp', '.tif', '.tiff')
CLASS_SEPARATOR = '_'

# PCA: None keeps every component with a non-negligible eigenvalue (at most N - 1)
N_COMPONENTS_PCA = None
PCA_EIGENVALUE_TOL = 1e-10

# LDA (Fisherfaces): -1 selects N - c and c - 1 respectively
LDA_N_OPT1 = -1
LDA_N_OPT2 = -1

# ICA (Infomax, architecture I): None uses every PCA component
N_COMPONENTS_ICA = None
ICA_LEARNING_RATE = 5e-4
ICA_BLOCK_SIZE = 50
ICA_MAX_ITERATIONS = 100
ICA_TOLERANCE = 1e-6
ICA_ANNEAL = 0.95

# tolerance of the symmetry precondition of Matrix.eigen, relative to max |M|
SYMMETRY_TOL = 1e-8

PLOT_STYLE = 'seaborn-v0_8-whitegrid'
PLOT_DPI = 150
PLOT_FIGSIZE_SMALL = (8, 6)
PLOT_FIGSIZE_MEDIUM = (12, 8)
PLOT_COLORMAP = 'viridis'

N_EIGENFACES_DISPLAY = 12

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
MODELS_PATH = os.path.join(BASE_DIR, "results", "models")
OUTPUT_PATH = os.path.join(BASE_DIR, "results", "figures")
METRICS_PATH = os.path.join(BASE_DIR, "results", "metrics")

TRAINING_SET_FILE = "trainingset.dat"
TRAINING_DATA_FILE = "trainingdata.dat"


def get_config_summary():
    return {
        'General': {
            'Random State': RANDOM_STATE,
            'Verbose': VERBOSE,
            'Precision': np.dtype(PRECISION).name
        },
        'PCA': {
            'Components': N_COMPONENTS_PCA,
            'Eigenvalue Tolerance': PCA_EIGENVALUE_TOL
        },
        'LDA': {
            'n_opt1': LDA_N_OPT1,
            'n_opt2': LDA_N_OPT2
        },
        'ICA': {
            'Components': N_COMPONENTS_ICA,
            'Learning Rate': ICA_LEARNING_RATE,
            'Block Size': ICA_BLOCK_SIZE,
            'Max Iterations': ICA_MAX_ITERATIONS
        },
        'Paths': {
            'Models': MODELS_PATH,
            'Figures': OUTPUT_PATH,
            'Metrics': METRICS_PATH
        }
    }


def print_config():
    print("PROJECT CONFIGURATION")
    summary = get_config_summary()
    for section, params in summary.items():
        print(f"\n{section}:")
        for key, value in params.items():
            print(f"  {key}: {value}")
