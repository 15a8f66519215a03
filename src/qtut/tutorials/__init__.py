from importlib import import_module
from types import ModuleType

# Every tutorial module exposes run_default() and plot_default(result).
TUTORIALS = ("dicke", "adiabatic", "kerr", "lowrank", "rabi", "cavity_heom")


def load(name: str) -> ModuleType:
    if name not in TUTORIALS:
        raise KeyError(f"Unknown tutorial {name!r}; available: {', '.join(TUTORIALS)}")
    return import_module(f"{__name__}.{name}")


__all__ = ["TUTORIALS", "load"]
