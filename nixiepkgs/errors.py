"""Evaluation failures.

Every error aborts the whole evaluation; none is downgraded to a warning.
Each carries the failure ``kind`` and the offending ``name`` so the CLI
can report both.
"""


class EvalError(Exception):
    kind = "EvalError"

    def __init__(self, name: str, message: str):
        super().__init__(message)
        self.name = name

    def __str__(self) -> str:
        return f"{self.kind}: {self.args[0]}"


class UnresolvableReference(EvalError):
    kind = "UnresolvableReference"


class UnsupportedSystem(EvalError):
    kind = "UnsupportedSystem"

    def __init__(self, system: str, supported):
        super().__init__(
            system,
            f"system {system!r} is not supported "
            f"(supported: {', '.join(sorted(supported))})",
        )


class MissingTool(EvalError):
    kind = "MissingTool"

    def __init__(self, name: str, system: str):
        super().__init__(name, f"build tool {name!r} not found in the package set for {system}")
        self.system = system


class MissingLibrary(EvalError):
    kind = "MissingLibrary"

    def __init__(self, name: str, system: str):
        super().__init__(name, f"library {name!r} not found in the package set for {system}")
        self.system = system


class LockMismatch(EvalError):
    kind = "LockMismatch"
