"""
Scene Errors
============
All failures raised by the scene core. They signal contract violations by the
caller (or a misbehaving collaborator), never transient faults, so nothing
here is retried.
"""


class SceneError(Exception):
    """Base class for every error raised by the scene core."""


class UnsupportedKindError(SceneError, ValueError):
    """A primitive kind outside the supported set was requested."""


class NotFoundError(SceneError, KeyError):
    """The targeted primitive or connector is not in the scene registry."""

    def __str__(self) -> str:
        # KeyError quotes its message, keep it readable
        return str(self.args[0]) if self.args else ""


class AssetImportError(SceneError):
    """The asset loader failed or returned no / several root meshes."""


class CycleError(SceneError):
    """A parent chain loops back onto itself."""


class SceneDisposedError(SceneError):
    """The scene was torn down and can no longer be mutated."""
