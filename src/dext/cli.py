from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from .diagnostics import DextError
from .python_gen import gen_python
from .schema import load_file, load_record_types


def main(argv: list[str] | None = None) -> int:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("-v", "--verbose", action="store_true", help="Debug logging on stderr")
    common.add_argument("--json-diagnostics", action="store_true", help="Report errors as JSON on stdout")

    p = argparse.ArgumentParser(prog="dext", description="Generate immutable record types from JSON definitions.")
    sub = p.add_subparsers(dest="cmd", required=True)

    g = sub.add_parser("gen", parents=[common], help="Write a Python module with the record classes")
    g.add_argument("defs", help="Record definition document (.json)")
    g.add_argument("--out", default="-", help="Output .py file (default: stdout)")
    g.add_argument("--module", default=None, help="Module name for the header (default: document 'module' or file stem)")

    c = sub.add_parser("check", parents=[common], help="Validate a definition document")
    c.add_argument("defs", help="Record definition document (.json)")

    args = p.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        doc = load_file(args.defs)
        rtypes = load_record_types(doc)
        if args.cmd == "check":
            _report_ok(args, records=len(rtypes))
            return 0

        module = args.module or doc.get("module") or Path(args.defs).stem
        src = gen_python(rtypes, module_name=module)
        if args.out == "-":
            sys.stdout.write(src)
            return 0
        out = Path(args.out)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(src, encoding="utf-8")
        _report_ok(args, records=len(rtypes), out=str(out))
        return 0
    except DextError as e:
        if args.json_diagnostics:
            print(json.dumps({"status": "error", "diagnostics": [e.diag.to_json()]}, ensure_ascii=False))
        else:
            print(f"ERROR: {e.diag}", file=sys.stderr)
            if e.diag.remediation:
                print(f"  hint: {e.diag.remediation}", file=sys.stderr)
        return 2
    except OSError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2


def _report_ok(args: argparse.Namespace, **info) -> None:
    if args.json_diagnostics:
        print(json.dumps({"status": "ok", **info}, ensure_ascii=False))
    else:
        print("OK. " + " ".join(f"{k}={v}" for k, v in info.items()))


if __name__ == "__main__":
    raise SystemExit(main())
