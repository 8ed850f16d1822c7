"""
Image catalogs: the ordered (class, file name) list of a corpus.

Training corpora are laid out as one sub-directory per class; test corpora
are a flat directory. The class of a file is encoded in its base name as
'{class}_{index}.ext', which is what is_same_class compares.
"""

import os
import config
from facerec.errors import DataIOError


class ImageEntry:
    """A single catalog entry: integer class id and image path."""

    __slots__ = ('label', 'name')

    def __init__(self, label, name):
        self.label = label
        self.name = name

    def __eq__(self, other):
        if not isinstance(other, ImageEntry):
            return NotImplemented
        return self.label == other.label and self.name == other.name

    def __repr__(self):
        return f"ImageEntry({self.label}, {self.name!r})"


def _is_image_file(name):
    return not name.startswith('.') and name.lower().endswith(config.IMAGE_EXTENSIONS)


def get_directory(path):
    """
    List the image files of a directory.

    Returns:
        list: sorted paths of the images directly inside path
    """
    if not os.path.isdir(path):
        raise DataIOError(f"'{path}' is not a directory")

    return [os.path.join(path, name) for name in sorted(os.listdir(path))
            if _is_image_file(name) and os.path.isfile(os.path.join(path, name))]


def get_directory_rec(path):
    """
    Build a labeled catalog from a directory with one sub-directory per class.

    Class ids are assigned 0, 1, ... in sorted sub-directory order; empty
    sub-directories do not get a class id.

    Returns:
        tuple: (entries, num_classes)
    """
    if not os.path.isdir(path):
        raise DataIOError(f"'{path}' is not a directory")

    entries = []
    num_classes = 0

    for class_dir in sorted(os.listdir(path)):
        class_path = os.path.join(path, class_dir)
        if class_dir.startswith('.') or not os.path.isdir(class_path):
            continue

        images = get_directory(class_path)
        if not images:
            continue

        entries.extend(ImageEntry(num_classes, name) for name in images)
        num_classes += 1

    if not entries:
        raise DataIOError(f"no training images found under '{path}'")

    return entries, num_classes


def rem_base_dir(path):
    """Strip the directories from a path."""
    return os.path.basename(path)


def class_name(path):
    """Class part of '{class}_{index}.ext'; the whole stem when there is no separator."""
    stem = os.path.splitext(rem_base_dir(path))[0]
    return stem.split(config.CLASS_SEPARATOR, 1)[0]


def is_same_class(path1, path2):
    return class_name(path1) == class_name(path2)


def count_classes(entries):
    return len({entry.label for entry in entries})


def write_catalog(path, entries):
    """Write one '<class> <name>' line per entry."""
    try:
        with open(path, 'w') as f:
            for entry in entries:
                f.write(f"{entry.label} {entry.name}\n")
    except OSError as e:
        raise DataIOError(f"cannot write catalog '{path}': {e}") from e


def read_catalog(path):
    """Read a catalog written by write_catalog."""
    try:
        with open(path) as f:
            lines = f.read().splitlines()
    except OSError as e:
        raise DataIOError(f"cannot read catalog '{path}': {e}") from e

    entries = []

    for line_no, line in enumerate(lines, 1):
        if not line.strip():
            continue

        label, sep, name = line.partition(' ')
        if not sep or not name:
            raise DataIOError(f"{path}:{line_no}: expected '<class> <name>'")

        try:
            entries.append(ImageEntry(int(label), name))
        except ValueError as e:
            raise DataIOError(f"{path}:{line_no}: invalid class id '{label}'") from e

    return entries
