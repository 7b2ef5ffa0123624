"""
poml_transformations.py

3D transformation helpers using NumPy.
Builds 4x4 homogeneous matrices from the position, rotation (quaternion) and
scale of POML elements and applies them to point data.
"""

import math
import logging
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .attribute_codec import Vector3, Quaternion, Scale
from .poml_entities import PomlElementBase

logger = logging.getLogger(__name__)

# --- Matrix Creation Functions ---

def identity_matrix() -> np.ndarray:
    """Return a 4x4 identity matrix."""
    return np.identity(4, dtype=float)


def translation_matrix(position: Optional[Vector3]) -> np.ndarray:
    """Return a 4x4 translation matrix; None translates by nothing."""
    mat = identity_matrix()
    if position is not None:
        mat[0:3, 3] = (position[0], position[1], position[2])
    return mat


def quaternion_to_matrix(rotation: Optional[Quaternion]) -> np.ndarray:
    """
    Return a 4x4 rotation matrix for a quaternion (x, y, z, w).
    The quaternion is normalised first. None or a zero quaternion yields identity.
    """
    if rotation is None:
        return identity_matrix()

    x, y, z, w = (float(v) for v in rotation)
    norm = math.sqrt(x * x + y * y + z * z + w * w)
    if math.isclose(norm, 0.0):
        logger.warning("Zero-length quaternion; using identity rotation.")
        return identity_matrix()
    x, y, z, w = x / norm, y / norm, z / norm, w / norm

    mat = identity_matrix()
    mat[0:3, 0:3] = [
        [1 - 2 * (y * y + z * z), 2 * (x * y - z * w),     2 * (x * z + y * w)],
        [2 * (x * y + z * w),     1 - 2 * (x * x + z * z), 2 * (y * z - x * w)],
        [2 * (x * z - y * w),     2 * (y * z + x * w),     1 - 2 * (x * x + y * y)],
    ]
    return mat


def scale_matrix(scale: Optional[Scale]) -> np.ndarray:
    """
    Return a 4x4 scaling matrix.
    A scalar scales uniformly; a vector scales each axis.
    """
    mat = identity_matrix()
    if scale is None:
        return mat
    if isinstance(scale, (tuple, list)):
        sx, sy, sz = scale
    else:
        sx = sy = sz = scale
    mat[0, 0], mat[1, 1], mat[2, 2] = sx, sy, sz
    return mat


def combine_transformations(*matrices: np.ndarray) -> np.ndarray:
    """
    Combine multiple 4x4 transformation matrices.
    Transformations are applied in the order given (left to right multiplication).
    """
    result = identity_matrix()
    for m in matrices:
        result = result @ m
    return result


def element_local_matrix(element: PomlElementBase) -> np.ndarray:
    """Local transform of an element: translation @ rotation @ scale."""
    attributes = element.attributes
    return combine_transformations(
        translation_matrix(attributes.position),
        quaternion_to_matrix(attributes.rotation),
        scale_matrix(attributes.scale),
    )


# --- Point Transformation ---

def apply_transform(points: Sequence[Sequence[float]], matrix: np.ndarray) -> List[Tuple[float, float, float]]:
    """Apply a 4x4 transformation matrix to a sequence of (x, y, z) points."""
    if not points:
        return []
    pts = np.ones((len(points), 4), dtype=float)
    pts[:, 0:3] = [(p[0], p[1], p[2]) for p in points]
    transformed = (matrix @ pts.T).T
    result = []
    for row in transformed:
        w = row[3]
        if math.isclose(w, 0.0):
            logger.error("Transformation produced a point at infinity (w=0); skipping.")
            continue
        result.append((row[0] / w, row[1] / w, row[2] / w))
    return result
