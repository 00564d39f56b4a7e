from __future__ import annotations

import builtins
import inspect
import sys


NAMESPACE_SEPARATOR = "."


def type_name(tp: type, separator: str = NAMESPACE_SEPARATOR) -> str:
    """Fully qualified name of a class, e.g. ``app.services.Mailer``.

    Builtins keep their bare name (``int``). With a custom separator the module
    dots are replaced by it.
    """
    name = tp.__qualname__ if tp.__module__ == "builtins" else f"{tp.__module__}.{tp.__qualname__}"
    if separator != ".":
        name = name.replace(".", separator)
    return name


def is_type_style(identifier: str, separator: str = NAMESPACE_SEPARATOR) -> bool:
    return separator in identifier


def bare(identifier: str, separator: str = NAMESPACE_SEPARATOR) -> str:
    """Drop a single leading separator."""
    if identifier.startswith(separator):
        return identifier[len(separator) :]
    return identifier


def absolute(identifier: str, separator: str = NAMESPACE_SEPARATOR) -> str:
    return separator + bare(identifier, separator)


def is_loaded_type(name: str, separator: str = NAMESPACE_SEPARATOR) -> bool:
    """Tell whether `name` names a class that is reachable without importing anything.

    Only modules already present in ``sys.modules`` are searched, plus ``builtins``
    for undotted names. Nested classes (``module.Outer.Inner``) are followed through
    attribute access. Classes defined inside a function (``<locals>`` in their
    qualname) are not reachable this way and report ``False``.
    """
    name = bare(name, separator)
    if not name:
        return False

    parts = name.split(separator)
    if len(parts) == 1:
        return inspect.isclass(getattr(builtins, name, None))

    # Longest module path first: "pkg.mod.Outer.Inner" tries "pkg.mod.Outer", then "pkg.mod", ...
    for split in range(len(parts) - 1, 0, -1):
        module = sys.modules.get(".".join(parts[:split]))
        if module is None:
            continue

        obj: object = module
        for attr in parts[split:]:
            obj = getattr(obj, attr, None)
            if obj is None:
                break

        if inspect.isclass(obj):
            return True

    return False
