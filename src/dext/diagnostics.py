from __future__ import annotations
from dataclasses import dataclass, asdict
from typing import Any, Dict

# Every error raised by dext carries a Diagnostic with a stable code.
# DXT-REC-*    record definition / construction
# DXT-LET-*    destructuring
# DXT-CONV-*   byte/integer conversion
# DXT-ARGS-*   argument binder
# DXT-SCHEMA-* record definition documents

@dataclass(frozen=True)
class Diagnostic:
    code: str
    message: str
    remediation: str = ""

    def to_json(self) -> Dict[str, Any]:
        return asdict(self)

    def __str__(self) -> str:
        return f"{self.code} {self.message}"


class DextError(Exception):
    def __init__(self, diag: Diagnostic):
        super().__init__(diag.message)
        self.diag = diag

    @property
    def code(self) -> str:
        return self.diag.code

    @classmethod
    def make(cls, code: str, message: str, remediation: str = "") -> "DextError":
        return cls(Diagnostic(code=code, message=message, remediation=remediation))


class ArityError(DextError, TypeError):
    """Wrong number of values for a construction or destructuring."""


class FieldTypeError(DextError, TypeError):
    """A value does not match its declared field type, or the type tag is unusable."""


class InvalidFieldNameError(DextError, ValueError):
    """A record or field name breaks the naming rules."""


class FrozenRecordError(DextError, AttributeError):
    pass


class ConvError(DextError, ValueError):
    pass


class ArgsError(DextError, ValueError):
    pass


class SchemaError(DextError, ValueError):
    pass
