from __future__ import annotations


class ContainerError(Exception):
    pass


class AlreadySingletonError(ContainerError):
    """Raised when rebinding an identifier that is bound as a singleton."""


class InvalidIdentifierTypeError(ContainerError, TypeError):
    pass


class UnboundIdentifierError(ContainerError, KeyError):
    """Raised when resolving an identifier that has no binding."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the message readable.
        return str(self.args[0]) if self.args else ""


class ResolutionError(ContainerError, RuntimeError):
    pass


class CyclicDependencyError(ResolutionError):
    def __init__(self, chain: list[str]) -> None:
        self.chain = chain
        super().__init__(f"Cyclic dependency detected: {' -> '.join(chain)}")
