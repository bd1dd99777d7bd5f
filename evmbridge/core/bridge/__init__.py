"""Bridge route planning, fee estimation and transfer tracking."""

from typing import TYPE_CHECKING

from .errors import BridgeError

if TYPE_CHECKING:  # pragma: no cover
    from .fees import FeeModel
    from .planner import RoutePlanner
    from .registry import BridgeRegistry
    from .service import BridgeService
    from .tracker import TransferTracker

__all__ = ["BridgeError", "BridgeRegistry", "BridgeService", "FeeModel", "RoutePlanner", "TransferTracker"]

_LAZY = {
    "BridgeRegistry": ".registry",
    "FeeModel": ".fees",
    "RoutePlanner": ".planner",
    "BridgeService": ".service",
    "TransferTracker": ".tracker",
}


def __getattr__(name: str):  # pragma: no cover - simple thunk
    module_name = _LAZY.get(name)
    if module_name is None:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    from importlib import import_module

    return getattr(import_module(module_name, __name__), name)
