"""
Render Engine Contract
======================
The narrow interface through which the scene core talks to the 3D engine.

Why is this file needed?
------------------------
The controllers must stay free of PyVista/Qt imports. They only need to
create drawables, move them, throw them away and load asset files. The
concrete implementation lives in 'viewer3d.view.widgets.pyvista_engine';
tests plug in a recording fake.

Classes:
    RenderEngine: Protocol implemented by engine adapters.
    LoadedMesh, LoadedTransformNode, LoadedGeometry, LoadedAsset: Raw result
        of an asset load, before the importer assigns scene ids.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional, Protocol, Union, TYPE_CHECKING

if TYPE_CHECKING:
    import numpy as np
    import numpy.typing as npt
    from viewer3d.model.scene import MeshKind, ShapeParams

# Engine-side handle of a drawn object (a pyvista Actor in production)
Drawable = Any


@dataclass(eq=False)
class LoadedTransformNode:
    name: str
    parent: Optional[LoadedParent] = None
    position: tuple[float, float, float] = (0.0, 0.0, 0.0)


@dataclass(eq=False)
class LoadedGeometry:
    name: str
    dataset: Any = None


@dataclass(eq=False)
class LoadedMesh:
    name: str
    parent: Optional[LoadedParent] = None
    position: tuple[float, float, float] = (0.0, 0.0, 0.0)
    drawable: Optional[Drawable] = None
    geometry: Optional[LoadedGeometry] = None


LoadedParent = Union[LoadedMesh, LoadedTransformNode]


@dataclass
class LoadedAsset:
    """Everything one asset file produced, with the names the file gave it."""
    meshes: List[LoadedMesh] = field(default_factory=list)
    transform_nodes: List[LoadedTransformNode] = field(default_factory=list)
    geometries: List[LoadedGeometry] = field(default_factory=list)

    def drawables(self) -> List[Drawable]:
        return [m.drawable for m in self.meshes if m.drawable is not None]


class RenderEngine(Protocol):
    def create_primitive(self, kind: MeshKind, params: ShapeParams, name: str) -> Drawable: ...

    def create_polyline(self, points: npt.NDArray[np.float64], name: str) -> Drawable: ...

    def place_drawable(self, drawable: Drawable, position: npt.NDArray[np.float64]) -> None: ...

    def remove_from_scene(self, drawable: Drawable) -> None: ...

    def dispose_drawable(self, drawable: Drawable) -> None: ...

    async def import_asset(self, path: str, filename: str) -> LoadedAsset: ...

    def resize(self) -> None: ...
