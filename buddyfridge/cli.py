"""CLI entry point."""

from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from dataclasses import dataclass

from dotenv import load_dotenv

from .clock import Clock, as_expiry, preset_expiry
from .config import FridgeConfig, load_config
from .db import FrequentItemDB, InventoryDB
from .errors import FridgeError, NotFound
from .lifecycle import BatchLifecycle, BatchPatch, PendingOpen, PendingThaw
from .memory import FrequencyMemory
from .models import BatchInput, FoodBatch, MeasureUnit, StorageLocation
from .mood import classify, group_by_product, mood_message, product_status
from .notifications import NotificationDispatcher, create_dispatcher
from .reminders import ReminderScheduler
from .seed import seed_starter_pack

_LOCATIONS = [loc.value for loc in StorageLocation]
_UNITS = [unit.value for unit in MeasureUnit]
_STATUS_MARK = {"expired": "🔴", "expiring": "🟠", "fresh": "🟢"}


@dataclass
class _App:
    engine: BatchLifecycle
    inventory: InventoryDB
    memory_db: FrequentItemDB

    def close(self) -> None:
        self.inventory.close()
        self.memory_db.close()


def build_app(
    config: FridgeConfig,
    dispatcher: NotificationDispatcher | None = None,
    clock: Clock | None = None,
) -> _App:
    """Wire stores, memory, reminders and the lifecycle engine together."""
    clock = clock or Clock()
    inventory = InventoryDB(config.database.path)
    memory_db = FrequentItemDB(config.database.path)
    memory = FrequencyMemory(memory_db, clock)
    if config.inventory.seed_starter_pack:
        seed_starter_pack(memory)

    engine = BatchLifecycle(
        store=inventory,
        memory=memory,
        reminders=ReminderScheduler(dispatcher or create_dispatcher(config), clock),
        preferences=config.reminders.preferences(),
        clock=clock,
        consume_threshold=config.inventory.consume_threshold,
    )
    return _App(engine=engine, inventory=inventory, memory_db=memory_db)


def main(argv: list[str] | None = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    load_dotenv()
    config = load_config(args.config)

    if args.command == "serve":
        _cmd_serve(config)
        return

    app = build_app(config)
    try:
        code = _dispatch(app.engine, config, args)
    except FridgeError as e:
        print(f"Error: {e}", file=sys.stderr)
        code = 1
    finally:
        app.close()
    if code:
        sys.exit(code)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="buddyfridge",
        description="Household food inventory with expiry reminders",
    )
    parser.add_argument("--config", "-c", type=str, default=None, help="TOML config file")
    parser.add_argument("--verbose", "-v", action="store_true", help="debug logging")

    sub = parser.add_subparsers(dest="command")

    # add
    add = sub.add_parser("add", help="add a batch")
    add.add_argument("name")
    add.add_argument("--quantity", "-q", type=int, default=None)
    _add_expiry_args(add)
    add.add_argument("--location", "-l", choices=_LOCATIONS, default=None)
    add.add_argument("--emoji", default=None)
    add.add_argument("--amount", type=float, default=None, help="weight/volume per batch")
    add.add_argument("--unit", choices=_UNITS, default=None)
    add.add_argument("--recurring", action="store_true", default=None)

    # list
    lst = sub.add_parser("list", help="show the inventory grouped by product")
    lst.add_argument("--json", action="store_true")

    # eat
    eat = sub.add_parser("eat", help="consume one unit")
    eat.add_argument("id")
    eat.add_argument("--no-shop", action="store_true", help="don't add to the shopping list")

    # use
    use = sub.add_parser("use", help="use part of a measured batch")
    use.add_argument("id")
    use.add_argument("remaining", type=float, help="fraction left, e.g. 0.5")

    # open
    opn = sub.add_parser("open", help="open a sealed batch")
    opn.add_argument("id")
    opn.add_argument("days", type=int, help="days it keeps once opened")
    which = opn.add_mutually_exclusive_group()
    which.add_argument("--one", action="store_true", help="open a single unit")
    which.add_argument("--all", action="store_true", help="open the whole batch")

    # edit
    edit = sub.add_parser("edit", help="change a batch")
    edit.add_argument("id")
    edit.add_argument("--name", default=None)
    edit.add_argument("--emoji", default=None)
    edit.add_argument("--quantity", "-q", type=int, default=None)
    edit.add_argument("--location", "-l", choices=_LOCATIONS, default=None)
    edit.add_argument("--amount", type=float, default=None)
    edit.add_argument("--unit", choices=_UNITS, default=None)
    _add_expiry_args(edit)
    edit.add_argument("--no-expiry", action="store_true")
    edit.add_argument("--confirm-thaw", action="store_true")

    # discard
    discard = sub.add_parser("discard", help="throw a batch away")
    discard.add_argument("id")

    # shop
    shop = sub.add_parser("shop", help="shopping list")
    shop_sub = shop.add_subparsers(dest="shop_command", required=True)
    shop_list = shop_sub.add_parser("list")
    shop_list.add_argument("--json", action="store_true")
    shop_add = shop_sub.add_parser("add")
    shop_add.add_argument("name")
    shop_buy = shop_sub.add_parser("buy", help="move an entry into the inventory")
    shop_buy.add_argument("id")
    shop_buy.add_argument("--quantity", "-q", type=int, default=1)
    _add_expiry_args(shop_buy)
    shop_buy.add_argument("--location", "-l", choices=_LOCATIONS, default="fridge")
    shop_buy.add_argument("--emoji", default=None)
    shop_done = shop_sub.add_parser("done")
    shop_done.add_argument("id")
    shop_remove = shop_sub.add_parser("remove")
    shop_remove.add_argument("id")

    # memory
    mem = sub.add_parser("memory", help="learned product defaults")
    mem_sub = mem.add_subparsers(dest="memory_command", required=True)
    mem_list = mem_sub.add_parser("list")
    mem_list.add_argument("--json", action="store_true")
    mem_suggest = mem_sub.add_parser("suggest")
    mem_suggest.add_argument("text")
    mem_forget = mem_sub.add_parser("forget")
    mem_forget.add_argument("name")

    # mood / reminders / serve
    sub.add_parser("mood", help="overall freshness")
    rem = sub.add_parser("reminders", help="show upcoming reminders")
    rem.add_argument("--json", action="store_true")
    sub.add_parser("serve", help="run the reminder scheduler in the foreground")

    return parser


def _add_expiry_args(p: argparse.ArgumentParser) -> None:
    group = p.add_mutually_exclusive_group()
    group.add_argument("--expires", "-e", default=None, help="YYYY-MM-DD")
    group.add_argument("--in-days", type=int, default=None)
    group.add_argument("--preset", choices=["3d", "1w", "2w"], default=None)


def _expiry_from_args(engine: BatchLifecycle, args):
    try:
        if args.expires:
            return as_expiry(args.expires)
    except ValueError as e:
        raise SystemExit(f"invalid date {args.expires!r}: {e}")
    if args.in_days is not None:
        return engine.clock.add_days(engine.clock.now(), args.in_days)
    if args.preset:
        return preset_expiry(engine.clock, args.preset)
    return None


def _resolve(engine: BatchLifecycle, batch_id: str) -> str:
    """Accept a full id or a unique prefix of one."""
    if engine.store.get(batch_id) is not None:
        return batch_id
    matches = [b.id for b in engine.list_batches() if b.id.startswith(batch_id)]
    if len(matches) == 1:
        return matches[0]
    raise NotFound("batch", batch_id)


def _resolve_entry(engine: BatchLifecycle, entry_id: str) -> str:
    matches = [e.id for e in engine.list_shopping() if e.id.startswith(entry_id)]
    if len(matches) == 1:
        return matches[0]
    raise NotFound("shopping entry", entry_id)


def _dispatch(engine: BatchLifecycle, config: FridgeConfig, args) -> int:
    match args.command:
        case "add":
            return _cmd_add(engine, args)
        case "list":
            return _cmd_list(engine, config, args)
        case "eat":
            return _cmd_eat(engine, args)
        case "use":
            result = engine.consume_partial(_resolve(engine, args.id), args.remaining)
            if result.deleted:
                print(f"Finished {result.batch.emoji} {result.batch.name}")
            else:
                print(f"{result.batch.emoji} {result.batch.name}: {result.batch.formatted_measure} left")
            return 0
        case "open":
            return _cmd_open(engine, args)
        case "edit":
            return _cmd_edit(engine, args)
        case "discard":
            batch = engine.delete_batch(_resolve(engine, args.id))
            print(f"Threw away {batch.emoji} {batch.name}")
            return 0
        case "shop":
            return _cmd_shop(engine, args)
        case "memory":
            return _cmd_memory(engine, args)
        case "mood":
            batches = engine.list_batches()
            mood = classify(batches, engine.clock.now(), config.inventory.warning_days)
            print(f"[{mood.value}] {mood_message(mood)}")
            return 0
        case "reminders":
            return _cmd_reminders(engine, args)
    return 1


def _cmd_add(engine: BatchLifecycle, args) -> int:
    known = engine.memory.get(args.name)
    data = engine.memory.prefill(known) if known else BatchInput(name=args.name)
    data.name = args.name

    expiry = _expiry_from_args(engine, args)
    if expiry is not None:
        data.expiry_date = expiry
    if args.quantity is not None:
        data.quantity = args.quantity
    if args.location is not None:
        data.location = StorageLocation(args.location)
    if args.emoji is not None:
        data.emoji = args.emoji
    if args.amount is not None:
        data.measure_value = args.amount
    if args.unit is not None:
        data.measure_unit = MeasureUnit(args.unit)
    if args.recurring is not None:
        data.is_recurring = args.recurring

    batch = engine.create_batch(data)
    print(f"Added {_describe(batch)}  [{batch.id[:8]}]")
    return 0


def _cmd_list(engine: BatchLifecycle, config: FridgeConfig, args) -> int:
    now = engine.clock.now()
    groups = group_by_product(engine.list_batches())
    warn = config.inventory.card_warning_days

    if args.json:
        data = [
            {
                "name": g.name,
                "emoji": g.emoji,
                "total_quantity": g.total_quantity,
                "status": product_status(g, now, warn),
                "batches": [_batch_json(b) for b in g.batches],
            }
            for g in groups
        ]
        print(json.dumps(data, ensure_ascii=False, indent=2))
        return 0

    if not groups:
        print(mood_message(classify([], now)))
        return 0
    for g in groups:
        mark = _STATUS_MARK[product_status(g, now, warn)]
        print(f"{mark} {g.emoji} {g.name}  x{g.total_quantity}")
        for b in g.batches:
            print(f"     [{b.id[:8]}] {_describe(b)}")
    return 0


def _cmd_eat(engine: BatchLifecycle, args) -> int:
    result = engine.consume_one(_resolve(engine, args.id), add_to_shopping=not args.no_shop)
    b = result.batch
    if not result.deleted:
        print(f"Ate one {b.emoji} {b.name}, {b.quantity} left")
        return 0
    print(f"Finished {b.emoji} {b.name}")
    if result.shopping_entry is not None:
        print(f"Added {b.name} to the shopping list")
    elif result.shopping_suggested:
        print(f"That was the last {b.name}. Add it with: buddyfridge shop add {b.name!r}")
    return 0


def _cmd_open(engine: BatchLifecycle, args) -> int:
    batch_id = _resolve(engine, args.id)
    outcome = engine.request_open(batch_id, args.days)
    if isinstance(outcome, PendingOpen):
        if not (args.one or args.all):
            print(
                f"This batch has {outcome.quantity} units. "
                f"Re-run with --one to open a single unit or --all for the whole batch.",
                file=sys.stderr,
            )
            return 2
        outcome = engine.confirm_open(outcome, open_all=args.all)

    print(f"Opened {_describe(outcome.opened)}  [{outcome.opened.id[:8]}]")
    if outcome.remainder is not None:
        print(f"Still sealed: {_describe(outcome.remainder)}")
    return 0


def _cmd_edit(engine: BatchLifecycle, args) -> int:
    patch = BatchPatch(
        name=args.name,
        emoji=args.emoji,
        quantity=args.quantity,
        location=StorageLocation(args.location) if args.location else None,
        measure_value=args.amount,
        measure_unit=MeasureUnit(args.unit) if args.unit else None,
        expiry_date=_expiry_from_args(engine, args),
        clear_expiry=args.no_expiry,
    )
    outcome = engine.edit_batch(
        _resolve(engine, args.id), patch, acknowledge_thaw=args.confirm_thaw
    )
    if isinstance(outcome, PendingThaw):
        print(outcome.message, file=sys.stderr)
        print("Re-run with --confirm-thaw to save.", file=sys.stderr)
        return 2
    print(f"Saved {_describe(outcome)}")
    return 0


def _cmd_shop(engine: BatchLifecycle, args) -> int:
    match args.shop_command:
        case "list":
            entries = engine.list_shopping()
            if args.json:
                data = [
                    {"id": e.id, "name": e.name, "completed": e.is_completed}
                    for e in entries
                ]
                print(json.dumps(data, ensure_ascii=False, indent=2))
            elif not entries:
                print("All done! The list is empty.")
            else:
                for e in entries:
                    box = "[x]" if e.is_completed else "[ ]"
                    print(f"{box} {e.name}  [{e.id[:8]}]")
        case "add":
            entry = engine.add_shopping_entry(args.name)
            print(f"On the list: {entry.name}  [{entry.id[:8]}]")
        case "buy":
            batch = engine.stock_from_shopping(
                _resolve_entry(engine, args.id),
                quantity=args.quantity,
                expiry_date=_expiry_from_args(engine, args),
                location=StorageLocation(args.location),
                emoji=args.emoji,
            )
            print(f"Put away {_describe(batch)}  [{batch.id[:8]}]")
        case "done":
            engine.set_shopping_completed(_resolve_entry(engine, args.id), True)
        case "remove":
            engine.delete_shopping_entry(_resolve_entry(engine, args.id))
    return 0


def _cmd_memory(engine: BatchLifecycle, args) -> int:
    match args.memory_command:
        case "list":
            records = engine.memory.list_all()
            if args.json:
                data = [
                    {
                        "name": r.name,
                        "emoji": r.emoji,
                        "quantity": r.quantity,
                        "location": r.location.value,
                        "shelf_life_days": r.shelf_life_days,
                        "last_used": r.last_used.isoformat(),
                    }
                    for r in records
                ]
                print(json.dumps(data, ensure_ascii=False, indent=2))
                return 0
            if not records:
                print("No memories yet. Buddy learns as you add food.")
            for r in records:
                print(f"{r.emoji} {r.name}: x{r.quantity} in {r.location.value}")
        case "suggest":
            for r in engine.memory.suggest(args.text):
                expiry = engine.memory.project_expiry(r)
                hint = f", expires {expiry:%Y-%m-%d}" if expiry else ""
                print(f"{r.emoji} {r.name} (x{r.quantity}, {r.location.value}{hint})")
        case "forget":
            if not engine.memory.forget(args.name):
                print(f"Nothing remembered for {args.name!r}", file=sys.stderr)
                return 1
            print(f"Forgot {args.name}")
    return 0


def _cmd_reminders(engine: BatchLifecycle, args) -> int:
    reminders = sorted(
        (r for b in engine.list_batches() for r in engine.reminders.compute(b, engine.preferences)),
        key=lambda r: r.fire_at,
    )
    if args.json:
        data = [
            {
                "id": r.identifier,
                "key": r.key,
                "fire_at": r.fire_at.isoformat(),
                "title": r.title,
                "body": r.body,
            }
            for r in reminders
        ]
        print(json.dumps(data, ensure_ascii=False, indent=2))
        return 0
    if not reminders:
        print("No reminders scheduled.")
    for r in reminders:
        print(f"{r.fire_at:%Y-%m-%d %H:%M}  {r.title}  {r.body}")
    return 0


def _cmd_serve(config: FridgeConfig) -> None:
    from apscheduler.schedulers.background import BackgroundScheduler

    from .notifications.background import BackgroundDispatcher
    from .scheduler import FridgeScheduler

    logging.getLogger("buddyfridge").setLevel(logging.INFO)
    scheduler = BackgroundScheduler()
    clock = Clock()
    reminders = ReminderScheduler(BackgroundDispatcher(scheduler=scheduler), clock)
    runner = FridgeScheduler(config, reminders, scheduler=scheduler, clock=clock)
    runner.start()
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        pass
    finally:
        runner.stop()


def _describe(batch: FoodBatch) -> str:
    parts = [f"{batch.emoji} {batch.name} x{batch.quantity}"]
    if batch.formatted_measure:
        parts.append(batch.formatted_measure)
    parts.append(batch.location.value)
    if batch.is_opened:
        parts.append("opened")
    if batch.expiry_date is not None:
        parts.append(f"expires {batch.expiry_date:%Y-%m-%d}")
    return ", ".join(parts)


def _batch_json(batch: FoodBatch) -> dict:
    return {
        "id": batch.id,
        "name": batch.name,
        "emoji": batch.emoji,
        "quantity": batch.quantity,
        "expiry_date": batch.expiry_date.isoformat() if batch.expiry_date else None,
        "added_date": batch.added_date.isoformat(),
        "location": batch.location.value,
        "measure_value": batch.measure_value,
        "measure_unit": batch.measure_unit.value,
        "is_opened": batch.is_opened,
        "is_recurring": batch.is_recurring,
    }
