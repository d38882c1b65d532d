"""Bind command-line arguments to an annotated options class.

    class Color(Enum):
        red = 1
        green = 2
        blue = 3

    @options(banner="My Super Cool App", config=ParserParams(ParserFlag.case_sensitive))
    class MyOptions:
        verbose: Annotated[bool, ShortName("v"), Help("be noisy"), Required()] = False
        color: Annotated[Color, ShortName("c"), Help("what color"), Required()] = Color.red

    opts = parse_args(MyOptions, ["-v", "--color=green"])

Every annotated attribute becomes ``--<name>`` (plus ``-<short>`` when a
ShortName is given). bool fields are switches, Enum fields take a member
name, ``List[T]`` fields may be repeated, anything else is converted with the
annotation itself (so ``int``, ``float``, ``Path``, ``IntType.UBYTE`` work).
Record classes are built with their constructor; other classes are created
with no arguments and the values assigned afterwards.
"""

from __future__ import annotations
import argparse
from dataclasses import dataclass
from enum import Enum
import logging
import sys
import typing
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .conv import IntType
from .diagnostics import ArgsError
from .runtime import check_value, is_record_class
from .typecons import params_for

log = logging.getLogger(__name__)


class ParserFlag(Enum):
    case_sensitive = "option names must match exactly (argparse default)"
    case_insensitive = "option names match regardless of case"
    allow_bundling = "short switches may be bundled: -abc (argparse default)"
    no_bundling = "reject bundled short switches"
    pass_through = "leave unknown options in the leftovers instead of failing"
    no_pass_through = "fail on unknown options (default)"
    stop_on_first_non_option = "stop parsing at the first positional token"
    keep_end_of_options = "keep the '--' marker in the leftovers"


ParserParams = params_for(ParserFlag)

_EXCLUSIVE = [
    (ParserFlag.case_sensitive, ParserFlag.case_insensitive),
    (ParserFlag.allow_bundling, ParserFlag.no_bundling),
    (ParserFlag.pass_through, ParserFlag.no_pass_through),
]


# --- field metadata ---

@dataclass(frozen=True)
class ShortName:
    char: str

    def __post_init__(self):
        c = self.char
        if not isinstance(c, str) or len(c) != 1 or not c.isprintable() or c.isspace() or c == "-":
            raise ArgsError.make(
                "DXT-ARGS-0001",
                f"short name must be a printable character, got {c!r}",
            )


@dataclass(frozen=True)
class Help:
    text: str


@dataclass(frozen=True)
class Required:
    pass


_MISSING = object()


@dataclass(frozen=True)
class OptionSpec:
    name: str
    type: Any
    default: Any = None
    short: Optional[str] = None
    help: Optional[str] = None
    required: bool = False

    @property
    def long(self) -> str:
        return "--" + self.name

    @property
    def is_switch(self) -> bool:
        return self.type is bool


def _single(owner: str, name: str, meta: Sequence[Any], kind: type) -> Any:
    found = [m for m in meta if isinstance(m, kind)]
    if len(found) > 1:
        raise ArgsError.make(
            "DXT-ARGS-0003",
            f"{owner}.{name} cannot have more than one {kind.__name__} annotation",
        )
    return found[0] if found else None


def option_specs(cls: type) -> List[OptionSpec]:
    """Collect the option declarations of ``cls`` in declaration order."""
    specs: List[OptionSpec] = []
    is_rec = is_record_class(cls)
    if is_rec:
        # record fields have no defaults; the class attributes are properties
        declared = [(f.name, f.type) for f in cls.__record_type__.fields]
        defaults: Dict[str, Any] = {}
    else:
        declared = list(typing.get_type_hints(cls, include_extras=True).items())
        defaults = {name: getattr(cls, name) for name, _ in declared if hasattr(cls, name)}
    for name, tp in declared:
        if name.startswith("_") or typing.get_origin(tp) is typing.ClassVar:
            continue
        meta: Tuple[Any, ...] = ()
        if typing.get_origin(tp) is typing.Annotated:
            tp, *rest = typing.get_args(tp)
            meta = tuple(rest)
        short = _single(cls.__name__, name, meta, ShortName)
        help_ = _single(cls.__name__, name, meta, Help)
        required = _single(cls.__name__, name, meta, Required) is not None
        if is_rec and tp is not bool and not check_value(tp, None):
            # no default to fall back on; let argparse report it
            required = True
        default = defaults.get(name, _MISSING)
        if default is _MISSING:
            default = False if tp is bool else None
        specs.append(OptionSpec(
            name=name,
            type=tp,
            default=default,
            short=short.char if short else None,
            help=help_.text if help_ else None,
            required=required,
        ))
    return specs


def _config(cls: type) -> ParserParams:
    return getattr(cls, "__args_config__", None) or ParserParams()


def options(cls: Optional[type] = None, *, banner: Optional[str] = None, config: Optional[ParserParams] = None):
    """Class decorator attaching a banner and parser configuration.

    Declarations are checked right away so mistakes surface at import time.
    """
    config = config if config is not None else ParserParams()
    for a, b in _EXCLUSIVE:
        if a in config and b in config:
            raise ArgsError.make(
                "DXT-ARGS-0002",
                f"{a.name} and {b.name} are mutually exclusive",
            )

    def wrap(c: type) -> type:
        c.__args_banner__ = banner
        c.__args_config__ = config
        option_specs(c)
        return c

    return wrap if cls is None else wrap(cls)


# --- parser construction ---

def _enum_converter(enum_cls):
    def convert(text: str):
        try:
            return enum_cls[text]
        except KeyError:
            raise ValueError(text) from None
    convert.__name__ = enum_cls.__name__
    return convert


def _int_converter(int_type: IntType):
    def convert(text: str) -> int:
        return int_type(int(text))
    convert.__name__ = int_type.type_name
    return convert


def _add_option(p: argparse.ArgumentParser, spec: OptionSpec, case_insensitive: bool) -> None:
    names = [spec.long]
    if spec.short:
        names.insert(0, "-" + spec.short)
    if case_insensitive:
        names = [n.lower() for n in names]
    kw: Dict[str, Any] = dict(dest=spec.name, help=spec.help, default=spec.default)
    if spec.required:
        kw["required"] = True

    tp = spec.type
    origin = typing.get_origin(tp)
    if origin is typing.Union or type(tp).__name__ == "UnionType":
        # Optional[T] converts as T and stays None when omitted
        rest = [a for a in typing.get_args(tp) if a is not type(None)]
        if len(rest) == 1:
            tp = rest[0]
            origin = typing.get_origin(tp)
    if tp is bool:
        kw["action"] = argparse.BooleanOptionalAction if spec.default is True else "store_true"
    elif isinstance(tp, IntType):
        kw["type"] = _int_converter(tp)
    elif isinstance(tp, type) and issubclass(tp, Enum):
        kw["type"] = _enum_converter(tp)
        kw["choices"] = list(tp)
        kw["metavar"] = "{" + ",".join(m.name for m in tp) + "}"
    elif origin in (list, List):
        (elem,) = typing.get_args(tp) or (str,)
        kw["action"] = "append"
        kw["type"] = _enum_converter(elem) if isinstance(elem, type) and issubclass(elem, Enum) else elem
        if spec.default is None:
            kw.pop("default")
    elif callable(tp) and origin is None:
        kw["type"] = tp
    else:
        raise ArgsError.make(
            "DXT-ARGS-0004",
            f"option --{spec.name} has unsupported type {tp!r}",
            "Use bool, an Enum, List[T] or a callable converter such as int or str.",
        )
    p.add_argument(*names, **kw)


def build_parser(cls: type, *, prog: Optional[str] = None,
                 formatter_class: type = argparse.HelpFormatter) -> argparse.ArgumentParser:
    config = _config(cls)
    p = argparse.ArgumentParser(
        prog=prog,
        description=getattr(cls, "__args_banner__", None),
        formatter_class=formatter_class,
        allow_abbrev=False,
    )
    for spec in option_specs(cls):
        _add_option(p, spec, config.case_insensitive)
    return p


# --- argv preprocessing ---

def _lower_option(token: str) -> str:
    if not token.startswith("-") or token == "-":
        return token
    name, sep, value = token.partition("=")
    return name.lower() + sep + value


def _value_options(specs: Sequence[OptionSpec], case_insensitive: bool) -> Dict[str, bool]:
    out: Dict[str, bool] = {}
    for s in specs:
        takes_value = not s.is_switch
        for n in ([s.long] + (["-" + s.short] if s.short else [])):
            out[n.lower() if case_insensitive else n] = takes_value
    return out


def _is_number(token: str) -> bool:
    try:
        float(token)
        return True
    except ValueError:
        return False


def _check_bundles(p: argparse.ArgumentParser, argv: Sequence[str], table: Dict[str, bool]) -> None:
    for t in argv:
        if t.startswith("-") and not t.startswith("--") and len(t) > 2 and "=" not in t and not _is_number(t):
            if all(table.get("-" + c) is False for c in t[1:]):
                p.error(f"bundled switches are not allowed: {t}")


def _split_at_first_positional(argv: Sequence[str], table: Dict[str, bool]) -> Tuple[List[str], List[str]]:
    i = 0
    while i < len(argv):
        t = argv[i]
        if not t.startswith("-") or t == "-" or _is_number(t):
            return list(argv[:i]), list(argv[i:])
        if "=" not in t and table.get(t):
            i += 1  # skip the option's value
        i += 1
    return list(argv), []


def _instantiate(cls: type, ns: argparse.Namespace, specs: Sequence[OptionSpec]) -> Any:
    if is_record_class(cls):
        return cls._make([getattr(ns, n) for n in cls.__record_type__.field_names])
    obj = cls()
    for s in specs:
        setattr(obj, s.name, getattr(ns, s.name))
    return obj


def parse_known_args(cls: type, argv: Optional[Sequence[str]] = None) -> Tuple[Any, List[str]]:
    """Parse ``argv`` into a new ``cls`` instance; returns (instance, leftovers).

    Leftovers are unknown tokens plus everything after ``--``.
    """
    argv = list(sys.argv[1:] if argv is None else argv)
    config = _config(cls)
    specs = option_specs(cls)
    parser = build_parser(cls)

    tail: List[str] = []
    if "--" in argv:
        i = argv.index("--")
        argv, tail = argv[:i], argv[i + 1:]
        if config.keep_end_of_options:
            tail.insert(0, "--")
    if config.case_insensitive:
        argv = [_lower_option(t) for t in argv]

    table = _value_options(specs, config.case_insensitive)
    if config.no_bundling:
        _check_bundles(parser, argv, table)
    rest: List[str] = []
    if config.stop_on_first_non_option:
        argv, rest = _split_at_first_positional(argv, table)

    ns, unknown = parser.parse_known_args(argv)
    leftovers = unknown + rest + tail
    log.debug("parsed %s: %r leftovers=%r", cls.__name__, vars(ns), leftovers)
    return _instantiate(cls, ns, specs), leftovers


def parse_args(cls: type, argv: Optional[Sequence[str]] = None) -> Any:
    """Parse ``argv`` into a new ``cls`` instance.

    Leftover tokens are an error unless the class is configured with
    ``ParserFlag.pass_through``.
    """
    obj, leftovers = parse_known_args(cls, argv)
    if leftovers and not _config(cls).pass_through:
        build_parser(cls).error(f"unrecognized arguments: {' '.join(leftovers)}")
    return obj
