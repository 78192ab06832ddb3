"""
PyVista Render Engine
=====================
Implements the RenderEngine protocol on top of a pyvista Plotter.

Why is this file needed?
------------------------
1. Isolation: It is the only place that turns scene records into VTK actors,
   so controllers and tests never touch PyVista directly.
2. Asset Loading: File parsing is delegated to pyvista.read() on a worker
   thread; MultiBlock datasets (glTF, VTM, ...) are mapped to a tree of
   transform nodes and meshes like the engine-side scene graph of an asset.
"""
from __future__ import annotations

import asyncio
import logging
import os
from typing import Union

import numpy as np
import numpy.typing as npt
import pyvista as pv

from viewer3d import config
from viewer3d.model.render_engine import (
    LoadedAsset, LoadedGeometry, LoadedMesh, LoadedTransformNode
)
from viewer3d.model.scene import MeshKind, ShapeParams
from viewer3d.view.widgets.vtk_utils import VtkUtils

logger = logging.getLogger(__name__)

# Name pyvista/glTF loaders give to the synthetic top node
ASSET_ROOT_NAME = "__root__"


class PyVistaEngine:
    def __init__(self, plotter: pv.Plotter) -> None:
        self.plotter = plotter
        self._vtk_utils = VtkUtils()

        self.primitive_color: str = config.PRIMITIVE_COLOR
        self.imported_color: str = config.IMPORTED_COLOR
        self.connector_color: str = config.CONNECTOR_COLOR
        self.connector_width: float = config.CONNECTOR_WIDTH

    # ------------------------------------------------------------------------------
    # Drawables
    # ------------------------------------------------------------------------------

    def create_primitive(self, kind: MeshKind, params: ShapeParams, name: str) -> pv.Actor:
        surface = self._vtk_utils.primitive_to_polydata(kind, params)
        return self.plotter.add_mesh(
            surface,
            color=self.primitive_color,
            name=name,
            reset_camera=False,
            render=False,
        )

    def create_polyline(self, points: npt.NDArray[np.float64], name: str) -> pv.Actor:
        line_pd = self._vtk_utils.polyline_to_polydata(points)
        return self.plotter.add_mesh(
            line_pd,
            color=self.connector_color,
            line_width=self.connector_width,
            name=name,
            pickable=False,
            render_lines_as_tubes=False,
            show_scalar_bar=False,
            reset_camera=False,
            render=False,
        )

    def place_drawable(self, drawable: pv.Actor, position: npt.NDArray[np.float64]) -> None:
        drawable.position = tuple(float(c) for c in position)

    def remove_from_scene(self, drawable: pv.Actor) -> None:
        self.plotter.remove_actor(drawable, reset_camera=False, render=False)

    def dispose_drawable(self, drawable: pv.Actor) -> None:
        # Drop the reference to the vertex data so VTK can free it
        mapper = drawable.GetMapper()
        if mapper is not None:
            mapper.RemoveAllInputs()

    def resize(self) -> None:
        self.plotter.render()

    # ------------------------------------------------------------------------------
    # Asset loading
    # ------------------------------------------------------------------------------

    async def import_asset(self, path: str, filename: str) -> LoadedAsset:
        """
        Read an asset file off the GUI thread, then build actors on the calling thread.
        Errors from pyvista.read() propagate to the caller.
        """
        dataset = await asyncio.to_thread(self.read_dataset, path, filename)
        return self.build_asset(dataset, filename)

    @staticmethod
    def read_dataset(path: str, filename: str) -> pv.DataObject:
        """Parse an asset file. Touches no actors, so it may run on any thread."""
        filepath = os.path.join(path, filename)
        logger.debug(f"Reading asset file: {filepath}")
        return pv.read(filepath)

    def build_asset(self, dataset: pv.DataObject, filename: str) -> LoadedAsset:
        """Create actors for a parsed dataset. Must run on the thread that owns the plotter."""
        asset = LoadedAsset()
        root = LoadedMesh(name=ASSET_ROOT_NAME)
        asset.meshes.append(root)

        if isinstance(dataset, pv.MultiBlock):
            self._add_blocks(asset, dataset, parent=root)
        else:
            self._add_leaf(asset, os.path.splitext(filename)[0], dataset, root)
        return asset

    def _add_blocks(
        self,
        asset: LoadedAsset,
        blocks: pv.MultiBlock,
        parent: Union[LoadedMesh, LoadedTransformNode]
    ) -> None:
        for name, block in self._vtk_utils.iter_blocks(blocks):
            if isinstance(block, pv.MultiBlock):
                node = LoadedTransformNode(name=name, parent=parent)
                asset.transform_nodes.append(node)
                self._add_blocks(asset, block, parent=node)
            else:
                self._add_leaf(asset, name, block, parent)

    def _add_leaf(
        self,
        asset: LoadedAsset,
        name: str,
        block: pv.DataSet,
        parent: Union[LoadedMesh, LoadedTransformNode]
    ) -> None:
        if block.n_points == 0:
            logger.debug(f"Skipping empty block '{name}'.")
            return

        geometry = LoadedGeometry(name=name, dataset=block)
        actor = self.plotter.add_mesh(
            block,
            color=self.imported_color,
            reset_camera=False,
            render=False,
        )
        asset.geometries.append(geometry)
        asset.meshes.append(LoadedMesh(name=name, parent=parent, drawable=actor, geometry=geometry))
