"""Tests for the asset importer (fresh ids, root adoption, failures and serialization)."""
import asyncio

import numpy as np
import pytest

from viewer3d.model.errors import AssetImportError
from viewer3d.model.render_engine import LoadedAsset, LoadedMesh, LoadedTransformNode
from viewer3d.model.scene import MeshKind, SpatialPrimitive, TransformNode


def _import(importer, filename):
    return asyncio.run(importer.import_asset("assets", filename))


def test_import_adopts_single_root(importer, manager):
    root = _import(importer, "nested.glb")

    assert isinstance(root, SpatialPrimitive)
    assert root.kind == MeshKind.IMPORTED
    assert root.parent is None
    assert root.connectors == set()
    assert root.source_name == "__root__"
    assert manager.registry.has_primitive(root)

    registry = manager.registry
    assert len(registry.primitives) == 3
    assert len(registry.transform_nodes) == 1
    assert len(registry.geometries) == 2
    parts = [p for p in registry.primitives.values() if p is not root]
    for part in parts:
        assert part.kind == MeshKind.IMPORTED
        assert isinstance(part.parent, TransformNode)
        assert part.parent.parent is root
        assert part.geometry is not None and part.geometry.id in registry.geometries
        assert manager.root(part) is root


def test_import_places_children_at_world_position(importer):
    root = _import(importer, "nested.glb")
    group = next(iter(importer.manager.registry.transform_nodes.values()))
    parts = importer.manager.registry.children_of(group)

    assert len(parts) == 2
    for part in parts:
        np.testing.assert_array_equal(part.drawable.position, [1.0, 0.0, 0.0])
    assert root.drawable is None


def test_importing_same_file_twice_gives_unique_ids(importer, manager):
    first = _import(importer, "nested.glb")
    second = _import(importer, "nested.glb")

    assert first is not second
    assert first.id != second.id
    registry = manager.registry
    assert len(registry.primitives) == 6
    assert len(registry.transform_nodes) == 2
    assert len(registry.geometries) == 4
    all_ids = [*registry.primitives, *registry.transform_nodes, *registry.geometries]
    assert len(all_ids) == len(set(all_ids))
    # The file's own names survive as metadata only
    assert {p.source_name for p in registry.primitives.values()} == {"__root__", "part_a", "part_b"}


def test_imported_root_behaves_like_native_primitive(importer, manager, check_scene):
    root = _import(importer, "nested.glb")
    box = manager.create("box", position=(0, 5, 0))
    connector = manager.add_connector(box, root)

    manager.move_to(root, {"x": 4})

    np.testing.assert_array_equal(connector.points[-1], [4.0, 0.0, 0.0])
    part = next(p for p in manager.registry.primitives.values() if p.source_name == "part_a")
    np.testing.assert_array_equal(part.drawable.position, [5.0, 0.0, 0.0])
    check_scene(manager)


def test_removing_imported_root_removes_whole_tree(importer, manager, engine):
    root = _import(importer, "nested.glb")
    box = manager.create("box")

    manager.remove(root)

    registry = manager.registry
    assert registry.primitives == {box.id: box}
    assert registry.transform_nodes == {}
    assert registry.geometries == {}
    assert [d.name for d in engine.live()] == [box.id]


@pytest.mark.parametrize("filename", ["two_roots.glb", "empty.glb"])
def test_asset_without_single_root_is_rejected(importer, manager, engine, filename):
    with pytest.raises(AssetImportError):
        _import(importer, filename)

    assert manager.registry.primitives == {}
    assert manager.registry.transform_nodes == {}
    assert engine.live() == []


def test_loader_failure_is_wrapped(importer, manager, engine):
    engine.load_error = OSError("file is corrupt")

    with pytest.raises(AssetImportError) as excinfo:
        _import(importer, "nested.glb")

    assert isinstance(excinfo.value.__cause__, OSError)
    assert "nested.glb" in str(excinfo.value)
    assert manager.registry.primitives == {}


def test_unknown_file_is_wrapped(importer):
    with pytest.raises(AssetImportError):
        _import(importer, "missing.glb")


def test_disposal_during_load_drops_result(importer, manager, engine):
    engine.on_load = manager.dispose

    result = _import(importer, "nested.glb")

    assert result is None
    assert manager.is_disposed
    assert manager.registry.primitives == {}
    assert engine.live() == []


def test_import_after_dispose_returns_none(importer, manager, engine):
    manager.dispose()
    assert _import(importer, "nested.glb") is None
    assert engine.drawables == []


def test_concurrent_imports_are_serialized(importer, manager, engine):
    async def import_both():
        return await asyncio.gather(
            importer.import_asset("assets", "nested.glb"),
            importer.import_asset("assets", "nested.glb"),
        )

    first, second = asyncio.run(import_both())

    assert engine.max_active_loads == 1
    assert first.id != second.id
    assert len(manager.registry.primitives) == 6


@pytest.mark.parametrize("filename, reason", [
    ("stray_group.glb", "exactly one parentless node"),
    ("looping.glb", "parent chain of 'a' loops"),
    ("foreign_parent.glb", "parent outside the asset"),
])
def test_malformed_tree_is_rejected_untouched(importer, manager, engine, filename, reason):
    box = manager.create("box")

    with pytest.raises(AssetImportError, match=reason):
        _import(importer, filename)

    registry = manager.registry
    assert registry.primitives == {box.id: box}
    assert registry.transform_nodes == {}
    assert registry.geometries == {}
    assert [d.name for d in engine.live()] == [box.id]
    assert all(d.disposed for d in engine.drawables if d.kind == "imported")


def test_transform_node_cannot_be_the_root(importer, manager, engine):
    def build(engine):
        asset = LoadedAsset()
        group = LoadedTransformNode(name="group")
        asset.transform_nodes.append(group)
        asset.meshes.append(LoadedMesh(name="part", parent=group, drawable=engine.create_primitive("imported", None, "part")))
        return asset
    engine.assets["group_root.glb"] = build

    with pytest.raises(AssetImportError, match="not a mesh"):
        _import(importer, "group_root.glb")
    assert manager.registry.primitives == {}
    assert engine.live() == []


def test_adopt_registers_a_tree_loaded_elsewhere(importer, manager, engine, check_scene):
    loaded = engine.build_asset(None, "nested.glb")

    root = importer.adopt(loaded, "nested.glb")

    assert manager.root(root) is root
    assert len(manager.registry.primitives) == 3
    manager.remove(root)
    assert manager.registry.primitives == {}
    assert engine.live() == []
    check_scene(manager)


def test_adopt_after_dispose_discards_the_tree(importer, manager, engine):
    loaded = engine.build_asset(None, "nested.glb")
    manager.dispose()

    assert importer.adopt(loaded, "nested.glb") is None
    assert engine.live() == []
