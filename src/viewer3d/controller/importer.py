"""
Asset Importer
==============
Loads external 3D asset files into the running scene.

Why is this file needed?
------------------------
1. Uniqueness: Names inside asset files are not unique against the live scene
   (importing the same file twice would clash), so every mesh, transform node
   and geometry gets a fresh scene id.
2. Adoption: The parentless mesh of the loaded tree becomes a first-class
   'imported' primitive that the RelationshipManager can move and connect like
   any box or sphere.
3. Serialization: Loading is the only asynchronous step of the session.
   Imports are queued behind a lock, and a result that arrives after the scene
   was torn down is dropped.

Classes:
    AssetImporter: Coroutine-based importer bound to one RelationshipManager.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Dict, List, Optional

import numpy as np

from viewer3d.controller.relationships import RelationshipManager
from viewer3d.model.errors import AssetImportError
from viewer3d.model.render_engine import (
    LoadedAsset, LoadedGeometry, LoadedMesh
)
from viewer3d.model.scene import GeometryRecord, MeshKind, SceneNode, SpatialPrimitive, TransformNode

logger = logging.getLogger(__name__)


class AssetImporter:
    def __init__(self, manager: RelationshipManager) -> None:
        self.manager = manager
        self._lock = asyncio.Lock()

    async def import_asset(self, path: str, filename: str) -> Optional[SpatialPrimitive]:
        """
        Load an asset file and adopt its node tree into the scene.

        Args:
            path: Directory containing the file (without the file name).
            filename: Name of the asset file.

        Returns:
            The root primitive of the imported tree, or None if the scene was
            disposed while the file was loading.

        Raises:
            AssetImportError: If loading fails or the asset has no single root.
        """
        async with self._lock:
            if self.manager.is_disposed:
                logger.warning(f"Skipping import of '{filename}': the scene is disposed.")
                return None

            logger.info(f"Importing asset '{filename}' from '{path}'.")
            engine = self.manager.engine
            try:
                loaded = await engine.import_asset(path, filename)
            except Exception as e:
                msg = f"Failed to load asset '{filename}' from '{path}': {e}"
                logger.error(msg)
                raise AssetImportError(msg) from e

            return self.adopt(loaded, filename)

    def adopt(self, loaded: LoadedAsset, filename: str) -> Optional[SpatialPrimitive]:
        """
        Validate a loaded tree and register it with the scene.

        Callers that read the file themselves (e.g. on a worker thread) hand the
        result in here on the thread that owns the scene; they are responsible
        for running one load at a time.

        Returns:
            The root primitive, or None if the scene was disposed meanwhile.

        Raises:
            AssetImportError: If the tree has no single root mesh, a foreign
                parent or a looping parent chain.
        """
        if self.manager.is_disposed:
            logger.warning(f"Scene was disposed while loading '{filename}'; dropping the result.")
            self._discard(loaded)
            return None

        problem = self._check_tree(loaded)
        if problem:
            self._discard(loaded)
            msg = f"Asset '{filename}' cannot be imported: {problem}"
            logger.error(msg)
            raise AssetImportError(msg)

        loaded_root = next(mesh for mesh in loaded.meshes if mesh.parent is None)
        root = self._adopt(loaded, loaded_root)
        logger.info(f"Imported '{filename}' as '{root.id}' "
                    f"({len(loaded.meshes)} meshes, {len(loaded.transform_nodes)} transform nodes, "
                    f"{len(loaded.geometries)} geometries).")
        return root

    # ------------------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------------------

    def _adopt(self, loaded: LoadedAsset, loaded_root: LoadedMesh) -> SpatialPrimitive:
        """Rebuild the loaded tree as scene nodes with fresh ids and register it."""
        ids = self.manager.ids

        geometries: Dict[int, GeometryRecord] = {}
        for geometry in self._all_geometries(loaded):
            geometries[id(geometry)] = GeometryRecord(
                id=ids.next(), source_name=geometry.name, dataset=geometry.dataset
            )

        nodes: Dict[int, SceneNode] = {}
        for node in loaded.transform_nodes:
            nodes[id(node)] = TransformNode(
                id=ids.next(), position=np.array(node.position, dtype=np.float64), source_name=node.name
            )
        primitives: List[SpatialPrimitive] = []
        for mesh in loaded.meshes:
            primitive = SpatialPrimitive(
                id=ids.next(),
                kind=MeshKind.IMPORTED,
                position=np.array(mesh.position, dtype=np.float64),
                drawable=mesh.drawable,
                geometry=geometries.get(id(mesh.geometry)) if mesh.geometry is not None else None,
                source_name=mesh.name,
            )
            nodes[id(mesh)] = primitive
            primitives.append(primitive)

        for loaded_node in [*loaded.transform_nodes, *loaded.meshes]:
            if loaded_node.parent is not None:
                nodes[id(loaded_node)].parent = nodes[id(loaded_node.parent)]

        root = nodes[id(loaded_root)]

        self.manager.register_imported(
            primitives,
            transform_nodes=[n for n in nodes.values() if isinstance(n, TransformNode)],
            geometries=geometries.values(),
        )
        return root

    @staticmethod
    def _check_tree(loaded: LoadedAsset) -> Optional[str]:
        """Describe why a loaded tree cannot be adopted, or return None."""
        nodes = [*loaded.meshes, *loaded.transform_nodes]
        roots = [node for node in nodes if node.parent is None]
        if len(roots) != 1:
            return f"expected exactly one parentless node, found {len(roots)}."
        if not isinstance(roots[0], LoadedMesh):
            return f"the parentless node '{roots[0].name}' is not a mesh."

        members = {id(node) for node in nodes}
        for node in nodes:
            if node.parent is not None and id(node.parent) not in members:
                return f"node '{node.name}' has a parent outside the asset."

            seen: set[int] = set()
            current = node
            while current is not None:
                if id(current) in seen:
                    return f"the parent chain of '{node.name}' loops."
                seen.add(id(current))
                current = current.parent
        return None

    @staticmethod
    def _all_geometries(loaded: LoadedAsset) -> List[LoadedGeometry]:
        # Meshes may reference geometries the loader did not list separately
        found = list(loaded.geometries)
        known = {id(g) for g in found}
        for mesh in loaded.meshes:
            if mesh.geometry is not None and id(mesh.geometry) not in known:
                known.add(id(mesh.geometry))
                found.append(mesh.geometry)
        return found

    def _discard(self, loaded: LoadedAsset) -> None:
        engine = self.manager.engine
        for drawable in loaded.drawables():
            engine.remove_from_scene(drawable)
            engine.dispose_drawable(drawable)
