from enum import Enum
from pathlib import Path
from typing import Annotated, Dict, List, Optional

import pytest

from dext import IntType, record
from dext.args import (
    Help,
    ParserFlag,
    ParserParams,
    Required,
    ShortName,
    build_parser,
    option_specs,
    options,
    parse_args,
    parse_known_args,
)
from dext.diagnostics import ArgsError


class Color(Enum):
    red = 1
    green = 2
    blue = 3


@options(banner="My Super Cool App", config=ParserParams(ParserFlag.case_sensitive))
class MyOptions:
    verbose: Annotated[bool, ShortName("v"), Help("be noisy"), Required()] = False
    color: Annotated[Color, ShortName("c"), Help("what color"), Required()] = Color.red


class Plain:
    count: int = 1
    name: Annotated[str, ShortName("n")] = "anon"
    flag: bool
    tags: List[str]
    out: Path = Path(".")


@options(config=ParserParams(ParserFlag.case_insensitive))
class Loose:
    verbose: Annotated[bool, ShortName("v")] = False
    color: Color = Color.red


@options(config=ParserParams(ParserFlag.no_bundling))
class Strict:
    a: Annotated[bool, ShortName("a")] = False
    b: Annotated[bool, ShortName("b")] = False


@options(config=ParserParams(ParserFlag.pass_through))
class Passing:
    count: int = 0


@options(config=ParserParams(ParserFlag.stop_on_first_non_option, ParserFlag.keep_end_of_options))
class Stopping:
    count: int = 0
    flag: bool = False


@options(banner="server")
@record
class Server:
    host: Annotated[str, Help("host name")]
    port: Annotated[IntType.USHORT, ShortName("p")]


def test_banner_example():
    opts = parse_args(MyOptions, ["-v", "--color=green"])
    assert opts.verbose is True
    assert opts.color is Color.green

    opts = parse_args(MyOptions, ["--verbose", "-c", "blue"])
    assert opts.color is Color.blue


def test_required_options(capsys):
    with pytest.raises(SystemExit) as ei:
        parse_args(MyOptions, ["-v"])
    assert ei.value.code == 2
    assert "--color" in capsys.readouterr().err


def test_bad_enum_value(capsys):
    with pytest.raises(SystemExit):
        parse_args(MyOptions, ["-v", "--color", "purple"])
    assert "purple" in capsys.readouterr().err


def test_help_text(capsys):
    text = build_parser(MyOptions).format_help()
    assert "My Super Cool App" in text
    assert "be noisy" in text
    assert "{red,green,blue}" in text
    with pytest.raises(SystemExit) as ei:
        parse_args(MyOptions, ["--help"])
    assert ei.value.code == 0
    capsys.readouterr()


def test_plain_class_defaults():
    opts = parse_args(Plain, [])
    assert opts.count == 1
    assert opts.name == "anon"
    assert opts.flag is False
    assert opts.tags is None
    assert opts.out == Path(".")


def test_plain_class_values():
    opts = parse_args(Plain, ["--count", "3", "-n", "bob", "--flag", "--tags", "a", "--tags", "b", "--out", "/tmp/x"])
    assert opts.count == 3
    assert opts.name == "bob"
    assert opts.flag is True
    assert opts.tags == ["a", "b"]
    assert opts.out == Path("/tmp/x")


def test_conversion_errors_exit(capsys):
    with pytest.raises(SystemExit):
        parse_args(Plain, ["--count", "many"])
    capsys.readouterr()


def test_unknown_options_fail_by_default(capsys):
    with pytest.raises(SystemExit):
        parse_args(Plain, ["--nope"])
    assert "--nope" in capsys.readouterr().err


def test_abbreviations_are_not_accepted(capsys):
    with pytest.raises(SystemExit):
        parse_args(Plain, ["--cou", "3"])
    capsys.readouterr()


def test_end_of_options_marker():
    opts, rest = parse_known_args(Plain, ["--count", "2", "--", "-x", "file"])
    assert opts.count == 2
    assert rest == ["-x", "file"]


def test_case_insensitive():
    opts = parse_args(Loose, ["-V", "--COLOR=green"])
    assert opts.verbose is True
    assert opts.color is Color.green


def test_case_sensitive_by_default(capsys):
    with pytest.raises(SystemExit):
        parse_args(Plain, ["--COUNT", "2"])
    capsys.readouterr()


def test_bundling():
    @options
    class Bundled:
        a: Annotated[bool, ShortName("a")] = False
        b: Annotated[bool, ShortName("b")] = False

    opts = parse_args(Bundled, ["-ab"])
    assert opts.a and opts.b


def test_no_bundling(capsys):
    with pytest.raises(SystemExit):
        parse_args(Strict, ["-ab"])
    assert "bundled" in capsys.readouterr().err
    opts = parse_args(Strict, ["-a", "-b"])
    assert opts.a and opts.b


def test_pass_through():
    opts = parse_args(Passing, ["--count", "4", "--other", "x"])
    assert opts.count == 4
    opts, rest = parse_known_args(Passing, ["--other", "x"])
    assert rest == ["--other", "x"]


def test_stop_on_first_non_option():
    opts, rest = parse_known_args(Stopping, ["--count", "2", "file", "--flag", "--", "tail"])
    assert opts.count == 2
    assert opts.flag is False
    assert rest == ["file", "--flag", "--", "tail"]


def test_record_options_class():
    srv = parse_args(Server, ["--host", "localhost", "-p", "8080"])
    assert srv == Server("localhost", 8080)
    assert "host name" in build_parser(Server).format_help()


def test_record_int_type_range(capsys):
    with pytest.raises(SystemExit):
        parse_args(Server, ["--host", "h", "--port", "70000"])
    capsys.readouterr()


def test_option_specs():
    specs = {s.name: s for s in option_specs(MyOptions)}
    assert specs["verbose"].short == "v"
    assert specs["verbose"].required is True
    assert specs["verbose"].is_switch
    assert specs["color"].long == "--color"
    assert specs["color"].default is Color.red


@pytest.mark.parametrize("char", ["", "ab", " ", "\n", "-"])
def test_bad_short_names(char):
    with pytest.raises(ArgsError) as ei:
        ShortName(char)
    assert ei.value.code == "DXT-ARGS-0001"


@pytest.mark.parametrize("flags", [
    (ParserFlag.case_sensitive, ParserFlag.case_insensitive),
    (ParserFlag.allow_bundling, ParserFlag.no_bundling),
    (ParserFlag.pass_through, ParserFlag.no_pass_through),
])
def test_exclusive_flags(flags):
    with pytest.raises(ArgsError) as ei:
        @options(config=ParserParams(*flags))
        class Opts:
            x: int = 0

    assert ei.value.code == "DXT-ARGS-0002"


def test_duplicate_metadata():
    with pytest.raises(ArgsError) as ei:
        @options
        class Opts:
            x: Annotated[int, Help("one"), Help("two")] = 0

    assert ei.value.code == "DXT-ARGS-0003"


def test_unsupported_option_type():
    class Opts:
        table: Dict[str, int] = None

    with pytest.raises(ArgsError) as ei:
        parse_args(Opts, [])
    assert ei.value.code == "DXT-ARGS-0004"


def test_record_fields_without_none_are_required(capsys):
    Opts = record("Opts", [("count", int), ("verbose", bool), ("label", Optional[str])])
    with pytest.raises(SystemExit) as ei:
        parse_args(Opts, ["--verbose"])
    assert ei.value.code == 2
    err = capsys.readouterr().err
    assert "the following arguments are required: --count" in err

    opts = parse_args(Opts, ["--count", "2"])
    assert opts == Opts(2, False, None)
    assert parse_args(Opts, ["--count", "2", "--label", "x"]).label == "x"


def test_record_option_specs_mark_required():
    specs = {s.name: s for s in option_specs(Server)}
    assert specs["host"].required and specs["port"].required
