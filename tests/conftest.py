"""
Pytest configuration and shared fixtures.

The scene core is exercised against FakeEngine, a recording stand-in for the
PyVista adapter, so most tests need neither a display nor an OpenGL context.
PyVista adapter tests create an off-screen plotter and skip when the platform
cannot provide one.
"""
import asyncio
import os
import sys
from typing import Callable, Dict, List, Optional

import numpy as np
import pytest

# Must be set before any PySide6/Qt import
if sys.platform.startswith("linux"):
    os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from viewer3d.controller.importer import AssetImporter
from viewer3d.controller.relationships import RelationshipManager
from viewer3d.model.render_engine import (
    LoadedAsset, LoadedGeometry, LoadedMesh, LoadedTransformNode
)


class FakeDrawable:
    def __init__(self, kind: str, name: str, points: Optional[np.ndarray] = None) -> None:
        self.kind = kind
        self.name = name
        self.points = points
        self.position = np.zeros(3)
        self.in_scene = True
        self.disposed = False

    def __repr__(self) -> str:
        return f"FakeDrawable({self.kind}, {self.name})"


class FakeEngine:
    """Records every call the scene core makes to the render engine."""

    def __init__(self) -> None:
        self.drawables: List[FakeDrawable] = []
        self.polyline_calls: List[str] = []
        self.assets: Dict[str, Callable[["FakeEngine"], LoadedAsset]] = {}
        self.load_error: Optional[Exception] = None
        self.on_load: Optional[Callable[[], None]] = None
        self.resize_calls = 0
        self.active_loads = 0
        self.max_active_loads = 0

    def _track(self, drawable: FakeDrawable) -> FakeDrawable:
        self.drawables.append(drawable)
        return drawable

    def create_primitive(self, kind, params, name):
        return self._track(FakeDrawable(str(kind), name))

    def create_polyline(self, points, name):
        self.polyline_calls.append(name)
        return self._track(FakeDrawable("polyline", name, points=np.array(points, dtype=float)))

    def place_drawable(self, drawable, position):
        drawable.position = np.array(position, dtype=float)

    def remove_from_scene(self, drawable):
        drawable.in_scene = False

    def dispose_drawable(self, drawable):
        drawable.disposed = True

    async def import_asset(self, path, filename):
        self.active_loads += 1
        self.max_active_loads = max(self.max_active_loads, self.active_loads)
        try:
            # Give other queued coroutines a chance to run
            await asyncio.sleep(0)
            if self.load_error is not None:
                raise self.load_error
            asset = self.assets[filename](self)
            if self.on_load is not None:
                self.on_load()
            return asset
        finally:
            self.active_loads -= 1

    def build_asset(self, dataset, filename):
        return self.assets[filename](self)

    def resize(self):
        self.resize_calls += 1

    def live(self) -> List[FakeDrawable]:
        return [d for d in self.drawables if d.in_scene and not d.disposed]

    def live_polylines(self) -> List[FakeDrawable]:
        return [d for d in self.live() if d.kind == "polyline"]


def build_nested_asset(engine: FakeEngine) -> LoadedAsset:
    """
    __root__ (mesh, no drawable)
      └─ group (transform node, offset x=1)
           ├─ part_a (mesh)
           └─ part_b (mesh)
    """
    asset = LoadedAsset()
    root = LoadedMesh(name="__root__")
    group = LoadedTransformNode(name="group", parent=root, position=(1.0, 0.0, 0.0))
    asset.meshes.append(root)
    asset.transform_nodes.append(group)
    for name in ("part_a", "part_b"):
        geometry = LoadedGeometry(name=name)
        drawable = engine._track(FakeDrawable("imported", name))
        asset.geometries.append(geometry)
        asset.meshes.append(LoadedMesh(name=name, parent=group, drawable=drawable, geometry=geometry))
    return asset


def build_two_root_asset(engine: FakeEngine) -> LoadedAsset:
    asset = LoadedAsset()
    for name in ("left", "right"):
        asset.meshes.append(LoadedMesh(name=name, drawable=engine._track(FakeDrawable("imported", name))))
    return asset


def build_stray_group_asset(engine: FakeEngine) -> LoadedAsset:
    """A root mesh plus a second, parentless transform node holding a mesh."""
    asset = LoadedAsset()
    asset.meshes.append(LoadedMesh(name="__root__"))
    stray = LoadedTransformNode(name="stray")
    asset.transform_nodes.append(stray)
    asset.meshes.append(LoadedMesh(name="orphan", parent=stray, drawable=engine._track(FakeDrawable("imported", "orphan"))))
    return asset


def build_looping_asset(engine: FakeEngine) -> LoadedAsset:
    """A root mesh next to two meshes that are each other's parent."""
    asset = LoadedAsset()
    asset.meshes.append(LoadedMesh(name="__root__"))
    a = LoadedMesh(name="a", drawable=engine._track(FakeDrawable("imported", "a")))
    b = LoadedMesh(name="b", parent=a, drawable=engine._track(FakeDrawable("imported", "b")))
    a.parent = b
    asset.meshes.extend([a, b])
    return asset


def build_foreign_parent_asset(engine: FakeEngine) -> LoadedAsset:
    """A mesh whose parent was never returned by the loader."""
    asset = LoadedAsset()
    asset.meshes.append(LoadedMesh(name="__root__"))
    outside = LoadedTransformNode(name="outside")
    asset.meshes.append(LoadedMesh(name="part", parent=outside, drawable=engine._track(FakeDrawable("imported", "part"))))
    return asset


@pytest.fixture
def engine() -> FakeEngine:
    engine = FakeEngine()
    engine.assets["nested.glb"] = build_nested_asset
    engine.assets["two_roots.glb"] = build_two_root_asset
    engine.assets["empty.glb"] = lambda _: LoadedAsset()
    engine.assets["stray_group.glb"] = build_stray_group_asset
    engine.assets["looping.glb"] = build_looping_asset
    engine.assets["foreign_parent.glb"] = build_foreign_parent_asset
    return engine


@pytest.fixture
def manager(engine) -> RelationshipManager:
    return RelationshipManager(engine)


@pytest.fixture
def importer(manager) -> AssetImporter:
    return AssetImporter(manager)


def assert_scene_consistent(manager: RelationshipManager) -> None:
    """Connector sets match endpoint bindings and bound points match positions."""
    registry = manager.registry
    for primitive in registry.primitives.values():
        for connector in registry.connectors.values():
            bound = connector.source is primitive or connector.target is primitive
            assert (connector in primitive.connectors) == bound, (primitive, connector)
        for connector in primitive.connectors:
            assert registry.has_connector(connector)

    for connector in registry.connectors.values():
        if connector.source is not None:
            assert registry.has_primitive(connector.source)
            np.testing.assert_array_equal(connector.points[0], manager.world_position(connector.source))
        if connector.target is not None:
            assert registry.has_primitive(connector.target)
            np.testing.assert_array_equal(connector.points[-1], manager.world_position(connector.target))
        # The drawn polyline always reflects the stored points
        assert connector.drawable is not None and not connector.drawable.disposed
        np.testing.assert_array_equal(connector.drawable.points, connector.points)


@pytest.fixture
def check_scene():
    return assert_scene_consistent
