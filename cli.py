#!/usr/bin/env python3
# Orange Tools CLI v1.0.0
# argparse. Same calculators as the API, straight to the terminal.

import argparse
import json
import sys

import config
from billing import format_jd, format_rate_pct, vat_breakdown, vat_breakdown_from_gross
from docs import DocStore
from pricing import FORMULAS, calculate_pricing, format_pricing
from prorata import prorate, prorate_activation, prorate_from_gross, resolve_cycle
from render import VIEWS, format_result
from validation import ValidationError


def cmd_price(args):
    """Orange price variants for a base price."""
    result = calculate_pricing(args.base)
    if args.json:
        print(json.dumps({"result": result.to_dict(), "formulas": FORMULAS}, ensure_ascii=False, indent=2))
        return
    print(format_pricing(result, args.lang))


def cmd_cycle(args):
    """Billing cycle around a date."""
    cycle = resolve_cycle(args.date, args.anchor)
    print(f"{cycle['start']} → {cycle['end']} ({cycle['lengthDays']} days)")


def _print_result(result, monthly, args):
    if args.json:
        print(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
        return
    print(format_result(result, monthly, args.lang, args.view, vat_rate=getattr(args, "vat_rate", None)))


def cmd_prorata(args):
    """Prorate a monthly amount over the cycle containing a date."""
    result = prorate(args.monthly, args.date, args.anchor, args.mode)
    _print_result(result, args.monthly, args)


def cmd_activation(args):
    """First invoice for a subscription activated on a date."""
    if (args.monthly is None) == (args.gross is None):
        raise ValidationError("give exactly one of --monthly or --gross")
    if args.gross is not None:
        result = prorate_from_gross(args.gross, args.date, args.anchor, args.vat_rate)
        monthly = result.monthly_net
    else:
        result = prorate_activation(args.monthly, args.date, args.anchor)
        monthly = args.monthly
    _print_result(result, monthly, args)


def cmd_vat(args):
    """Net/VAT/gross from one side."""
    if (args.net is None) == (args.gross is None):
        raise ValidationError("give exactly one of --net or --gross")
    if args.net is not None:
        b = vat_breakdown(args.net, args.vat_rate)
    else:
        b = vat_breakdown_from_gross(args.gross, args.vat_rate)
    print(f"Net:   JD {format_jd(b.net)}")
    print(f"VAT ({format_rate_pct(b.rate)}): JD {format_jd(b.vat)}")
    print(f"Gross: JD {format_jd(b.gross)}")


def cmd_docs(args):
    """List the documents."""
    store = DocStore(args.file, writable=config.DOCS_WRITABLE)
    docs = store.read()
    if not docs:
        print("No docs.")
        return
    for d in docs:
        url = d.url or "(no link)"
        print(f"  {d.id} | {d.title} | {url}")


def cmd_serve(args):
    """Start the API server."""
    import uvicorn
    from api import app
    print(f"Starting Orange Tools API on port {args.port}...")
    uvicorn.run(app, host=args.bind, port=args.port)


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="orange-tools",
        description="Orange Tools: pricing, pro-rata and VAT calculators",
    )
    sub = parser.add_subparsers(dest="command")

    # orange-tools price 10
    p_price = sub.add_parser("price", help="Orange price variants")
    p_price.add_argument("base", type=float, help="Base price A")
    p_price.add_argument("--lang", choices=["ar", "en"], default="en")
    p_price.add_argument("--json", action="store_true", help="Print JSON")
    p_price.set_defaults(func=cmd_price)

    # orange-tools cycle 2025-10-14
    p_cycle = sub.add_parser("cycle", help="Billing cycle around a date")
    p_cycle.add_argument("date", help="YYYY-MM-DD")
    p_cycle.add_argument("--anchor", type=int, default=config.DEFAULT_ANCHOR_DAY, help="Anchor day of month")
    p_cycle.set_defaults(func=cmd_cycle)

    def add_render_args(p):
        p.add_argument("--lang", choices=["ar", "en"], default="ar")
        p.add_argument("--view", choices=sorted(VIEWS), default="script")
        p.add_argument("--json", action="store_true", help="Print the raw result as JSON")

    # orange-tools prorata 2024-02-20 --monthly 100 --anchor 10 --mode elapsed
    p_pr = sub.add_parser("prorata", help="Prorate over the cycle containing a date")
    p_pr.add_argument("date", help="Pivot date YYYY-MM-DD")
    p_pr.add_argument("--monthly", type=float, required=True, help="Monthly amount (net)")
    p_pr.add_argument("--anchor", type=int, default=config.DEFAULT_ANCHOR_DAY, help="Anchor day of month")
    p_pr.add_argument("--mode", choices=["remaining", "elapsed"], default="remaining")
    add_render_args(p_pr)
    p_pr.set_defaults(func=cmd_prorata)

    # orange-tools activation 2025-10-14 --monthly 30
    p_act = sub.add_parser("activation", help="First invoice for a new activation")
    p_act.add_argument("date", help="Activation date YYYY-MM-DD")
    p_act.add_argument("--monthly", type=float, default=None, help="Monthly amount (net)")
    p_act.add_argument("--gross", type=float, default=None, help="Full invoice incl. VAT")
    p_act.add_argument("--anchor", type=int, default=config.DEFAULT_ANCHOR_DAY, help="Anchor day of month")
    p_act.add_argument("--vat-rate", type=float, default=config.DEFAULT_VAT_RATE)
    add_render_args(p_act)
    p_act.set_defaults(func=cmd_activation)

    # orange-tools vat --gross 116
    p_vat = sub.add_parser("vat", help="VAT breakdown")
    p_vat.add_argument("--net", type=float, default=None)
    p_vat.add_argument("--gross", type=float, default=None)
    p_vat.add_argument("--vat-rate", type=float, default=config.DEFAULT_VAT_RATE)
    p_vat.set_defaults(func=cmd_vat)

    # orange-tools docs
    p_docs = sub.add_parser("docs", help="List documents")
    p_docs.add_argument("--file", default=config.DOCS_FILE, help="Docs JSON file")
    p_docs.set_defaults(func=cmd_docs)

    # orange-tools serve
    p_serve = sub.add_parser("serve", help="Start the API server")
    p_serve.add_argument("--port", type=int, default=8000)
    p_serve.add_argument("--bind", default="0.0.0.0")
    p_serve.set_defaults(func=cmd_serve)

    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        args.func(args)
    except ValidationError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
