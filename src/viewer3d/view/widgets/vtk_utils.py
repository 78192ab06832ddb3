"""
VTK and Geometry Utilities
Helper functions for building PyVista datasets from scene data.
"""
from typing import Iterator, Tuple

import numpy as np
import numpy.typing as npt
import pyvista as pv

import logging

from viewer3d.model.scene import BoxParams, MeshKind, ShapeParams, SphereParams
from viewer3d.model.errors import UnsupportedKindError

logger = logging.getLogger(__name__)

class VtkUtils:
    @staticmethod
    def primitive_to_polydata(kind: MeshKind, params: ShapeParams) -> pv.PolyData:
        """
        Build the surface of a native primitive centered at the local origin.

        Raises:
            UnsupportedKindError: If the kind has no native surface.
        """
        if kind == MeshKind.BOX and isinstance(params, BoxParams):
            return pv.Box(bounds=params.bounds())
        if kind == MeshKind.SPHERE and isinstance(params, SphereParams):
            return pv.Sphere(
                radius=params.radius,
                center=(0.0, 0.0, 0.0),
                theta_resolution=params.segments,
                phi_resolution=params.segments,
            )
        raise UnsupportedKindError(f"No native surface for kind '{kind}' with {type(params).__name__}.")

    @staticmethod
    def polyline_to_polydata(points: npt.NDArray[np.float64]) -> pv.PolyData:
        """
        Convert a (N, 3) array of points to a single PolyData polyline.

        Raises:
            ValueError: If the input is not of shape (N, 3) with N >= 2.
        """
        pts = np.asarray(points, dtype=np.float64)
        if pts.ndim != 2 or pts.shape[1] != 3 or pts.shape[0] < 2:
            raise ValueError(f"Expected shape (N, 3) with N >= 2, got {pts.shape}.")

        n = pts.shape[0]
        pd = pv.PolyData(pts)
        # polyline cell: [n, id0, id1, ..., id(n-1)]
        pd.lines = np.hstack([[n], np.arange(n, dtype=np.int_)])
        return pd

    @staticmethod
    def iter_blocks(blocks: pv.MultiBlock) -> Iterator[Tuple[str, pv.DataObject]]:
        """
        Yield (name, block) for every non-empty child of a MultiBlock.
        Unnamed blocks get a positional name.
        """
        for i in range(blocks.n_blocks):
            block = blocks[i]
            if block is None:
                continue
            name = blocks.get_block_name(i) or f"block_{i}"
            yield name, block
