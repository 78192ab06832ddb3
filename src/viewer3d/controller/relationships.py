"""
Relationship Manager
====================
The only entry point for mutating the scene.

Why is this file needed?
------------------------
1. Consistency: A primitive's connector set, each connector's endpoint
   references and the connector's drawn points must agree after every
   operation. All bookkeeping for that lives here.
2. Propagation: Connectors are not reactive. Whenever a position or a binding
   changes, the affected connectors are resynced explicitly.
3. Lifecycle: Creation and removal of primitives/connectors, including the
   disposal of their drawables, go through this class so that nothing can
   dangle.

Classes:
    RelationshipManager: Factory, movement, connect/disconnect, removal.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence, Union, TYPE_CHECKING

import numpy as np

from viewer3d.model.errors import CycleError, SceneDisposedError
from viewer3d.model.geometry_primitives import VectorLike, as_delta, as_points, resolve_target
from viewer3d.model.identifiers import IdGenerator
from viewer3d.model.render_engine import RenderEngine
from viewer3d.model.scene import (
    Connector, EndpointRole, GeometryRecord, MeshKind, SceneNode, SceneRegistry, ShapeParams,
    SpatialPrimitive, TransformNode, iter_ancestors, parse_creatable_kind, parse_role, root_of,
    shape_params_for, world_position_of
)

if TYPE_CHECKING:
    import numpy.typing as npt

logger = logging.getLogger(__name__)


class RelationshipManager:
    def __init__(
        self,
        engine: RenderEngine,
        registry: Optional[SceneRegistry] = None,
        ids: Optional[IdGenerator] = None
    ) -> None:
        self.engine = engine
        self.registry: SceneRegistry = registry if registry is not None else SceneRegistry()
        self.ids: IdGenerator = ids if ids is not None else IdGenerator()
        self._disposed: bool = False

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    # ------------------------------------------------------------------------------
    # Primitives
    # ------------------------------------------------------------------------------

    def create(
        self,
        kind: Union[str, MeshKind],
        shape_params: Optional[Union[Mapping[str, Any], ShapeParams]] = None,
        position: Optional[VectorLike] = None
    ) -> SpatialPrimitive:
        """
        Create a native primitive and register it.

        Args:
            kind: 'box' or 'sphere'.
            shape_params: Options mapping or params dataclass for the shape.
            position: Initial position, origin by default.

        Raises:
            UnsupportedKindError: For any other kind (including 'imported').
            ValueError: For invalid shape parameters.
        """
        self._ensure_alive()
        resolved = parse_creatable_kind(kind)
        params = shape_params_for(resolved, shape_params)
        start = resolve_target(np.zeros(3), position) if position is not None else np.zeros(3)

        primitive = SpatialPrimitive(id=self.ids.next(), kind=resolved, position=start, params=params)
        primitive.drawable = self.engine.create_primitive(resolved, params, primitive.id)
        self.engine.place_drawable(primitive.drawable, world_position_of(primitive))

        self.registry.primitives[primitive.id] = primitive
        logger.info(f"Created {resolved.value} '{primitive.id}' at {start.tolist()}.")
        return primitive

    def move_by(self, primitive: SpatialPrimitive, delta: VectorLike) -> None:
        """Translate a primitive; missing axes of a mapping count as zero."""
        self._ensure_alive()
        self.registry.require_primitive(primitive)
        offset = as_delta(delta)
        self._set_position(primitive, primitive.position + offset)

    def move_to(self, primitive: SpatialPrimitive, target: VectorLike) -> None:
        """
        Move a primitive to a (possibly partial) target position.
        Axes absent from a mapping keep their current value.
        """
        self._ensure_alive()
        self.registry.require_primitive(primitive)
        resolved = resolve_target(primitive.position, target)
        # Assign the resolved target itself so no rounding from pos + (target - pos) remains
        self._set_position(primitive, resolved)

    def remove(self, primitive: SpatialPrimitive) -> None:
        """
        Remove a primitive and everything nested below it.
        Attached connectors are detached, not deleted.

        Raises:
            NotFoundError: If the primitive is not (or no longer) in the scene.
        """
        self._ensure_alive()
        self.registry.require_primitive(primitive)

        # Children first, so no node is removed while something still points to it as parent
        subtree = list(self.registry.iter_subtree(primitive))
        for node in reversed(subtree):
            self._remove_node(node)
        logger.info(f"Removed primitive '{primitive.id}' ({len(subtree) - 1} nested node(s)).")

    def set_parent(self, child: SpatialPrimitive, parent: Optional[SceneNode]) -> None:
        """
        Nest a primitive under another node, or un-nest it with None.
        The local position is kept, so the world position follows the new parent.

        Raises:
            CycleError: If 'parent' is the child itself or one of its descendants.
        """
        self._ensure_alive()
        self.registry.require_primitive(child)
        if parent is not None:
            if not self.registry.has_node(parent):
                self.registry.require_primitive(parent)
            if any(node is child for node in iter_ancestors(parent)):
                msg = f"Cannot parent '{child.id}' under '{parent.id}': it would create a cycle."
                logger.error(msg)
                raise CycleError(msg)

        child.parent = parent
        logger.debug(f"Parent of '{child.id}' set to '{parent.id if parent else None}'.")
        self._refresh_subtree(child)

    def root(self, node: SceneNode) -> SceneNode:
        """Furthest ancestor of a node. Raises CycleError on a looping chain."""
        return root_of(node)

    def world_position(self, node: SceneNode) -> npt.NDArray[np.float64]:
        return world_position_of(node)

    # ------------------------------------------------------------------------------
    # Connectors
    # ------------------------------------------------------------------------------

    def create_connector(
        self,
        points: Sequence[VectorLike],
        source: Optional[SpatialPrimitive] = None,
        target: Optional[SpatialPrimitive] = None
    ) -> Connector:
        """
        Create a connector from explicit points, optionally binding its ends.

        Raises:
            ValueError: If fewer than two 3D points are given.
            NotFoundError: If a given endpoint primitive is not in the scene.
        """
        self._ensure_alive()
        pts = as_points(points)
        for primitive in (source, target):
            if primitive is not None:
                self.registry.require_primitive(primitive)

        connector = Connector(id=self.ids.next(), points=pts)
        self.registry.connectors[connector.id] = connector
        if source is not None:
            self._bind(source, connector, EndpointRole.FROM)
        if target is not None:
            self._bind(target, connector, EndpointRole.TO)
        self.resync(connector)
        logger.info(f"Created connector '{connector.id}' with {len(pts)} points.")
        return connector

    def add_connector(self, primitive1: SpatialPrimitive, primitive2: SpatialPrimitive) -> Connector:
        """Connect two primitives (from=primitive1, to=primitive2). Self-loops are allowed."""
        self._ensure_alive()
        self.registry.require_primitive(primitive1)
        self.registry.require_primitive(primitive2)
        return self.create_connector(
            [world_position_of(primitive1), world_position_of(primitive2)],
            source=primitive1,
            target=primitive2
        )

    def connect(
        self,
        primitive: SpatialPrimitive,
        connector: Connector,
        role: Union[str, EndpointRole]
    ) -> None:
        """
        Bind one endpoint of a connector to a primitive.
        A previous binding of that endpoint is replaced.
        """
        self._ensure_alive()
        resolved = parse_role(role)
        self.registry.require_primitive(primitive)
        self.registry.require_connector(connector)
        self._bind(primitive, connector, resolved)
        self.resync(connector)

    def disconnect(self, primitive: SpatialPrimitive, connector: Connector) -> None:
        """
        Release every endpoint of the connector bound to the primitive.
        Released ends stay where they were. A pair without binding is left alone.
        """
        self._ensure_alive()
        self.registry.require_primitive(primitive)
        self.registry.require_connector(connector)
        if self._unbind(primitive, connector):
            self.resync(connector)

    def disconnect_all(self, primitive: SpatialPrimitive) -> None:
        self._ensure_alive()
        self.registry.require_primitive(primitive)
        for connector in list(primitive.connectors):
            self.disconnect(primitive, connector)

    def remove_connector(self, connector: Connector) -> None:
        """Unbind both endpoints (each from its own primitive), dispose and unregister."""
        self._ensure_alive()
        self.registry.require_connector(connector)
        for role in EndpointRole:
            bound = connector.endpoint(role)
            if bound is not None:
                self._unbind(bound, connector)
        self._drop_drawable(connector)
        del self.registry.connectors[connector.id]
        logger.info(f"Removed connector '{connector.id}'.")

    def remove_all_connectors_on(self, primitive: SpatialPrimitive) -> None:
        self._ensure_alive()
        self.registry.require_primitive(primitive)
        for connector in list(primitive.connectors):
            self.remove_connector(connector)

    def resync(self, connector: Connector) -> None:
        """
        Recompute the bound end points and recreate the drawn polyline.

        The engine does not pick up in-place vertex edits, so the old drawable
        is always replaced by a new one.
        """
        for role in EndpointRole:
            bound = connector.endpoint(role)
            if bound is not None:
                connector.points[Connector.point_index(role)] = world_position_of(bound)

        self._drop_drawable(connector)
        connector.drawable = self.engine.create_polyline(connector.points.copy(), connector.id)
        logger.debug(f"Resynced connector '{connector.id}': {connector.points.tolist()}")

    # ------------------------------------------------------------------------------
    # Import support
    # ------------------------------------------------------------------------------

    def register_imported(
        self,
        primitives: Iterable[SpatialPrimitive],
        transform_nodes: Iterable[TransformNode] = (),
        geometries: Iterable[GeometryRecord] = ()
    ) -> None:
        """Adopt nodes built by the asset importer and place their drawables."""
        self._ensure_alive()
        primitives = list(primitives)
        for node in transform_nodes:
            self.registry.transform_nodes[node.id] = node
        for geometry in geometries:
            self.registry.geometries[geometry.id] = geometry
        for primitive in primitives:
            self.registry.primitives[primitive.id] = primitive
        for primitive in primitives:
            if primitive.drawable is not None:
                self.engine.place_drawable(primitive.drawable, world_position_of(primitive))

    # ------------------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------------------

    def dispose(self) -> None:
        """Dispose every drawable and empty the registry. Idempotent."""
        if self._disposed:
            return
        for connector in list(self.registry.connectors.values()):
            self.remove_connector(connector)
        for primitive in list(self.registry.primitives.values()):
            if not self.registry.has_primitive(primitive):
                continue
            top = root_of(primitive)
            if isinstance(top, SpatialPrimitive) and self.registry.has_primitive(top):
                self.remove(top)
            else:
                self.remove(primitive)
        self.registry.clear()
        self._disposed = True
        logger.info("Scene disposed.")

    # ------------------------------------------------------------------------------
    # Internal: Bookkeeping
    # ------------------------------------------------------------------------------

    def _bind(self, primitive: SpatialPrimitive, connector: Connector, role: EndpointRole) -> None:
        previous = connector.endpoint(role)
        if previous is not None and previous is not primitive:
            connector.set_endpoint(role, None)
            if not connector.is_bound_to(previous):
                previous.connectors.discard(connector)

        connector.set_endpoint(role, primitive)
        connector.points[Connector.point_index(role)] = world_position_of(primitive)
        primitive.connectors.add(connector)
        logger.debug(f"Bound '{connector.id}' ({role.value}) to '{primitive.id}'.")

    def _unbind(self, primitive: SpatialPrimitive, connector: Connector) -> bool:
        """Clear the primitive's bindings on the connector. Returns True if anything changed."""
        roles = connector.roles_bound_to(primitive)
        # Released ends keep their last resolved position in 'points'
        for role in roles:
            connector.set_endpoint(role, None)

        changed = bool(roles) or connector in primitive.connectors
        primitive.connectors.discard(connector)
        if changed:
            logger.debug(f"Unbound '{connector.id}' from '{primitive.id}' ({[r.value for r in roles]}).")
        return changed

    def _set_position(self, primitive: SpatialPrimitive, position: npt.NDArray[np.float64]) -> None:
        primitive.position = np.asarray(position, dtype=np.float64).copy()
        logger.debug(f"Moved '{primitive.id}' to {primitive.position.tolist()}.")
        self._refresh_subtree(primitive)

    def _refresh_subtree(self, node: SceneNode) -> None:
        """Re-place drawables and resync connectors of a node and its descendants."""
        to_resync: Dict[str, Connector] = {}
        for current in self.registry.iter_subtree(node):
            if isinstance(current, SpatialPrimitive):
                if current.drawable is not None:
                    self.engine.place_drawable(current.drawable, world_position_of(current))
                for connector in current.connectors:
                    to_resync[connector.id] = connector
        for connector in to_resync.values():
            self.resync(connector)

    def _remove_node(self, node: SceneNode) -> None:
        if isinstance(node, TransformNode):
            self.registry.transform_nodes.pop(node.id, None)
            return

        for connector in list(node.connectors):
            if self._unbind(node, connector):
                self.resync(connector)
        self._drop_drawable(node)
        if node.geometry is not None:
            self.registry.geometries.pop(node.geometry.id, None)
        del self.registry.primitives[node.id]
        logger.debug(f"Unregistered '{node.id}'.")

    def _drop_drawable(self, obj: Union[SpatialPrimitive, Connector]) -> None:
        if obj.drawable is None:
            return
        self.engine.remove_from_scene(obj.drawable)
        self.engine.dispose_drawable(obj.drawable)
        obj.drawable = None

    def _ensure_alive(self) -> None:
        if self._disposed:
            msg = "The scene has been disposed."
            logger.error(msg)
            raise SceneDisposedError(msg)
