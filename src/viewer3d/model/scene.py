"""
Scene Data Model
================
Typed records for everything placed in the viewport, plus the central registry
that owns them.

Why is this file needed?
------------------------
1. Typed State: Primitives and connectors carry explicit fields (kind, parent,
   endpoints, points) instead of an untyped metadata bag.
2. Ownership: The SceneRegistry is the single owner of all scene objects.
   References between objects are plain attributes validated against it, and
   removal from the registry is the only deletion path.
3. Hierarchy: Parent-chain walking (root, world position) lives here so that
   it can be guarded against cycles in one place.

Classes:
    MeshKind, EndpointRole: Enumerations.
    BoxParams, SphereParams: Shape parameters for native primitives.
    SpatialPrimitive, TransformNode, GeometryRecord, Connector: Scene records.
    SceneRegistry: The container.
"""
from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import StrEnum
import logging
from typing import Any, Dict, Iterator, List, Mapping, Optional, Set, Union, TYPE_CHECKING

import numpy as np

from viewer3d.model.errors import CycleError, NotFoundError, UnsupportedKindError

if TYPE_CHECKING:
    import numpy.typing as npt

logger = logging.getLogger(__name__)


class MeshKind(StrEnum):
    BOX = "box"
    SPHERE = "sphere"
    IMPORTED = "imported"


# Kinds the factory can build. IMPORTED only ever comes from the importer.
CREATABLE_KINDS = (MeshKind.BOX, MeshKind.SPHERE)


class EndpointRole(StrEnum):
    FROM = "from"
    TO = "to"


def parse_creatable_kind(kind: Union[str, MeshKind]) -> MeshKind:
    """Map user input to a MeshKind the factory supports."""
    try:
        resolved = MeshKind(kind)
    except ValueError:
        resolved = None
    if resolved not in CREATABLE_KINDS:
        supported = ", ".join(k.value for k in CREATABLE_KINDS)
        msg = f"Unsupported primitive kind '{kind}'. Supported kinds: {supported}."
        logger.error(msg)
        raise UnsupportedKindError(msg)
    return resolved


def parse_role(role: Union[str, EndpointRole]) -> EndpointRole:
    try:
        return EndpointRole(role)
    except ValueError:
        raise ValueError(f"Unknown endpoint role '{role}'. Expected 'from' or 'to'.") from None


# -------------------------------------------------------------------------------
# Shape parameters
# -------------------------------------------------------------------------------

@dataclass
class BoxParams:
    width: float = 1.0
    height: float = 1.0
    depth: float = 1.0

    def bounds(self) -> tuple[float, float, float, float, float, float]:
        """Axis-aligned bounds centered at the local origin."""
        hw, hh, hd = self.width / 2, self.height / 2, self.depth / 2
        return -hw, hw, -hh, hh, -hd, hd

@dataclass
class SphereParams:
    diameter: float = 1.0
    segments: int = 32

    @property
    def radius(self) -> float:
        return self.diameter / 2

# Union for type hinting
ShapeParams = Union[BoxParams, SphereParams]

_PARAMS_CLASS: Dict[MeshKind, type] = {
    MeshKind.BOX: BoxParams,
    MeshKind.SPHERE: SphereParams,
}


def shape_params_for(
    kind: MeshKind,
    options: Optional[Union[Mapping[str, Any], ShapeParams]] = None
) -> ShapeParams:
    """
    Build the shape parameters for a native primitive.

    Accepts either a ready params dataclass or an options mapping. A 'size'
    option sets every box dimension at once and is overridden by explicit
    'width'/'height'/'depth'.

    Raises:
        ValueError: On unknown option names or non-positive dimensions.
    """
    params_cls = _PARAMS_CLASS[kind]

    if isinstance(options, params_cls):
        params = options
    elif options is None:
        params = params_cls()
    elif isinstance(options, Mapping):
        opts = dict(options)
        if kind == MeshKind.BOX and "size" in opts:
            size = opts.pop("size")
            for name in ("width", "height", "depth"):
                opts.setdefault(name, size)

        allowed = {f.name for f in fields(params_cls)}
        unknown = set(opts) - allowed
        if unknown:
            raise ValueError(f"Unknown {kind.value} option(s): {sorted(unknown)}. Allowed: {sorted(allowed)}.")
        params = params_cls(**opts)
    else:
        raise ValueError(f"Invalid shape parameters for {kind.value}: {options!r}")

    for f in fields(params):
        if getattr(params, f.name) <= 0:
            raise ValueError(f"{kind.value} option '{f.name}' must be positive, got {getattr(params, f.name)}.")
    return params


# -------------------------------------------------------------------------------
# Scene records
# -------------------------------------------------------------------------------

def _origin() -> npt.NDArray[np.float64]:
    return np.zeros(3, dtype=np.float64)


@dataclass(eq=False)
class TransformNode:
    """Drawable-less grouping node produced by asset import."""
    id: str
    position: npt.NDArray[np.float64] = field(default_factory=_origin)
    parent: Optional[SceneNode] = None
    source_name: Optional[str] = None


@dataclass(eq=False)
class GeometryRecord:
    """Vertex data an imported mesh was built from."""
    id: str
    source_name: Optional[str] = None
    dataset: Any = None


@dataclass(eq=False)
class SpatialPrimitive:
    """
    A placed 3D object (a "mesh").

    'position' is local to 'parent'; for a parentless primitive it is the
    world position. 'connectors' always equals the set of connectors whose
    source or target is this primitive.
    """
    id: str
    kind: MeshKind
    position: npt.NDArray[np.float64] = field(default_factory=_origin)
    parent: Optional[SceneNode] = None
    connectors: Set[Connector] = field(default_factory=set)
    drawable: Any = None
    params: Optional[ShapeParams] = None
    geometry: Optional[GeometryRecord] = None
    source_name: Optional[str] = None

    def __repr__(self) -> str:
        return f"SpatialPrimitive(id={self.id!r}, kind={self.kind.value!r}, position={self.position.tolist()})"


@dataclass(eq=False)
class Connector:
    """
    A polyline (a "line") whose end points optionally follow two primitives.

    points[0] belongs to the 'from' endpoint (source), points[-1] to the 'to'
    endpoint (target). A free endpoint keeps a fixed point.
    """
    id: str
    points: npt.NDArray[np.float64]
    source: Optional[SpatialPrimitive] = None
    target: Optional[SpatialPrimitive] = None
    drawable: Any = None

    def __repr__(self) -> str:
        src = self.source.id if self.source else None
        tgt = self.target.id if self.target else None
        return f"Connector(id={self.id!r}, source={src!r}, target={tgt!r})"

    @staticmethod
    def point_index(role: EndpointRole) -> int:
        return 0 if role == EndpointRole.FROM else -1

    def endpoint(self, role: EndpointRole) -> Optional[SpatialPrimitive]:
        return self.source if role == EndpointRole.FROM else self.target

    def set_endpoint(self, role: EndpointRole, primitive: Optional[SpatialPrimitive]) -> None:
        if role == EndpointRole.FROM:
            self.source = primitive
        else:
            self.target = primitive

    def roles_bound_to(self, primitive: SpatialPrimitive) -> List[EndpointRole]:
        return [role for role in EndpointRole if self.endpoint(role) is primitive]

    def is_bound_to(self, primitive: SpatialPrimitive) -> bool:
        return self.source is primitive or self.target is primitive


# Anything that can appear in a parent chain
SceneNode = Union[SpatialPrimitive, TransformNode]


# -------------------------------------------------------------------------------
# Hierarchy helpers
# -------------------------------------------------------------------------------

def iter_ancestors(node: SceneNode) -> Iterator[SceneNode]:
    """
    Yield the node itself followed by each parent up to the root.

    Raises:
        CycleError: If the parent chain revisits a node.
    """
    visited: Set[int] = set()
    current: Optional[SceneNode] = node
    while current is not None:
        if id(current) in visited:
            msg = f"Parent cycle detected above node '{node.id}' (revisited '{current.id}')."
            logger.error(msg)
            raise CycleError(msg)
        visited.add(id(current))
        yield current
        current = current.parent


def root_of(node: SceneNode) -> SceneNode:
    """Furthest ancestor of a node (the node itself when parentless)."""
    last = node
    for last in iter_ancestors(node):
        pass
    return last


def world_position_of(node: SceneNode) -> npt.NDArray[np.float64]:
    """Sum of local positions along the parent chain."""
    total = _origin()
    for ancestor in iter_ancestors(node):
        total += ancestor.position
    return total


# -------------------------------------------------------------------------------
# Registry
# -------------------------------------------------------------------------------

@dataclass
class SceneRegistry:
    """
    Holds every object of one viewport session, keyed by id.
    Lookups check identity, so a stale object with a reused-looking id is
    never mistaken for a registered one.
    """
    primitives: Dict[str, SpatialPrimitive] = field(default_factory=dict)
    connectors: Dict[str, Connector] = field(default_factory=dict)
    transform_nodes: Dict[str, TransformNode] = field(default_factory=dict)
    geometries: Dict[str, GeometryRecord] = field(default_factory=dict)

    def has_primitive(self, primitive: SpatialPrimitive) -> bool:
        return self.primitives.get(primitive.id) is primitive

    def has_connector(self, connector: Connector) -> bool:
        return self.connectors.get(connector.id) is connector

    def has_node(self, node: SceneNode) -> bool:
        if isinstance(node, TransformNode):
            return self.transform_nodes.get(node.id) is node
        return self.has_primitive(node)

    def require_primitive(self, primitive: SpatialPrimitive) -> SpatialPrimitive:
        if not isinstance(primitive, SpatialPrimitive) or not self.has_primitive(primitive):
            msg = f"Primitive '{getattr(primitive, 'id', primitive)}' is not in the scene."
            logger.error(msg)
            raise NotFoundError(msg)
        return primitive

    def require_connector(self, connector: Connector) -> Connector:
        if not isinstance(connector, Connector) or not self.has_connector(connector):
            msg = f"Connector '{getattr(connector, 'id', connector)}' is not in the scene."
            logger.error(msg)
            raise NotFoundError(msg)
        return connector

    def children_of(self, node: SceneNode) -> List[SceneNode]:
        children: List[SceneNode] = [p for p in self.primitives.values() if p.parent is node]
        children.extend(t for t in self.transform_nodes.values() if t.parent is node)
        return children

    def iter_subtree(self, node: SceneNode) -> Iterator[SceneNode]:
        """Depth-first walk of a node and all registered descendants (parents first)."""
        stack: List[SceneNode] = [node]
        seen: Set[int] = set()
        while stack:
            current = stack.pop()
            if id(current) in seen:
                continue
            seen.add(id(current))
            yield current
            stack.extend(self.children_of(current))

    def clear(self) -> None:
        self.primitives.clear()
        self.connectors.clear()
        self.transform_nodes.clear()
        self.geometries.clear()
