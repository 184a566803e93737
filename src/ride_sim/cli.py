# ride_sim/cli.py
import argparse
import json
import sys

from ride_sim.app.build import App, build
from ride_sim.config.models import AppModel
from ride_sim.domain.fleet import FleetSnapshot
from ride_sim.errors import QuoteError, ResolverError
from ride_sim.io.config import load_config
from ride_sim.io.kernel_logging import configure_logging
from ride_sim.io.recorder import JsonlSink


def _override(cfg: AppModel, section: str, **fields) -> AppModel:
    """Re-validate with some fields of one section replaced; None values are skipped."""
    data = cfg.model_dump()
    data[section].update({k: v for k, v in fields.items() if v is not None})
    return AppModel.model_validate(data)


def _config(args) -> AppModel:
    cfg = load_config(args.config)
    if getattr(args, "offline", False):
        cfg = _override(cfg, "resolver", gazetteer={"kind": "static"})
    if args.seed is not None:
        cfg = _override(cfg, "sim", seed=args.seed)
    return cfg


def _make_app(cfg: AppModel) -> App:
    configure_logging(level=cfg.log.level, stream=sys.stderr)
    return build(cfg, sinks=[JsonlSink(sys.stderr)])


def _print(obj) -> None:
    print(json.dumps(obj, indent=2, default=str))


# ------------------- commands ---------------------------


def cmd_quote(args) -> int:
    app = _make_app(_config(args))
    try:
        if args.all_vehicles:
            fares = app.quotes.quote_all_vehicles(args.pickup, args.destination, args.modifier)
            _print({vt.value: q.to_export() for vt, q in fares.items()})
        else:
            q = app.quotes.quote(args.pickup, args.destination, args.vehicle, args.modifier)
            _print(q.to_export())
    except ResolverError as e:
        print(f"ERROR: location lookup failed ({e})", file=sys.stderr)
        return 3
    except (QuoteError, ValueError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2
    finally:
        app.close()
    return 0


def cmd_fleet(args) -> int:
    fleet = {"count": args.count, "radius_km": args.radius_km}
    if args.lat is not None and args.lon is not None:
        fleet["center"] = {"lat": args.lat, "lon": args.lon}
    try:
        cfg = _override(_config(args), "fleet", **fleet)
    except ValueError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2
    app = _make_app(cfg)

    snaps: list[FleetSnapshot] = []
    app.ticker.listeners.append(snaps.append)
    first = app.start_session(0.0)
    app.run(until=args.ticks * cfg.fleet.tick_interval_s)
    app.close()

    for s in [first, *snaps]:
        print(
            json.dumps(
                {"tick": s.tick, "available": s.available_count, "drivers": s.to_export()}
            )
        )
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="ride-sim", description="Simulated ride-hailing fleet and trip quotes"
    )
    parser.add_argument("--config", help="JSON config file (defaults when omitted)")
    parser.add_argument("--seed", type=int, help="override sim.seed")
    sub = parser.add_subparsers(dest="command", required=True)

    q = sub.add_parser("quote", help="quote a trip between two places")
    q.add_argument("pickup")
    q.add_argument("destination")
    q.add_argument("--vehicle", default="taxi", help="bike, auto, taxi, premium or suv")
    q.add_argument(
        "--modifier",
        action="append",
        default=[],
        help="named fare modifier from the config (repeatable), e.g. night",
    )
    q.add_argument("--all-vehicles", action="store_true", help="fare for every vehicle type")
    q.add_argument(
        "--offline", action="store_true", help="use the built-in gazetteer instead of Nominatim"
    )
    q.set_defaults(func=cmd_quote)

    f = sub.add_parser("fleet", help="run the driver simulation and print snapshots")
    f.add_argument("--ticks", type=int, default=5)
    f.add_argument("--count", type=int)
    f.add_argument("--radius-km", type=float)
    f.add_argument("--lat", type=float)
    f.add_argument("--lon", type=float)
    f.set_defaults(func=cmd_fleet)

    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())
