"""CLI entry point for the adherence module."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from datetime import date, datetime, timedelta

from dotenv import load_dotenv

from .config import load_config
from .db import AdherenceDB
from .errors import InvalidOccurrence, MalformedRecurrence
from .inventory import InventoryTracker, is_low_stock
from .models import Action, SlotLabel, Status
from .schedule import load_day
from .scheduler import DoseScheduler, build_processor, sweep_missed
from .stats import summarize
from .status import local_naive
from .wire import medication_from_record, occurrence_to_record, reminder_from_record

_STATUS_ICONS = {
    Status.PENDING: "⏳",
    Status.ON_TIME: "✅",
    Status.LATE: "🕒",
    Status.SKIPPED: "⏭",
    Status.SNOOZED: "💤",
    Status.MISSED: "❌",
}


def _parse_at(text: str) -> datetime:
    return local_naive(datetime.fromisoformat(text))


def main(argv: list[str] | None = None) -> None:
    load_dotenv()

    parser = argparse.ArgumentParser(
        prog="medbuddy-adherence",
        description="Theo dõi lịch uống thuốc: liều hôm nay, đánh dấu đã uống, tồn kho",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=str,
        default=None,
        help="Đường dẫn tệp cấu hình (TOML)",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Ghi log chi tiết")

    sub = parser.add_subparsers(dest="command")

    # today
    today_parser = sub.add_parser("today", help="Danh sách liều trong ngày")
    today_parser.add_argument("--date", type=date.fromisoformat, default=None)
    today_parser.add_argument("--json", action="store_true", help="Xuất dạng JSON")

    # take / skip / snooze
    for action in Action:
        p = sub.add_parser(action.value, help=f"Đánh dấu liều: {action.value}")
        p.add_argument("reminder_id")
        p.add_argument("slot", type=SlotLabel.parse, help="Sáng / Chiều / Tối")
        p.add_argument("--date", type=date.fromisoformat, default=None)
        p.add_argument(
            "--at", type=_parse_at, default=None,
            help="Thời điểm thao tác (mặc định: bây giờ)",
        )

    # low-stock
    sub.add_parser("low-stock", help="Thuốc sắp hết")

    # restock
    restock_parser = sub.add_parser("restock", help="Mua thêm thuốc")
    restock_parser.add_argument("medication_id")
    restock_parser.add_argument("amount", type=float)

    # stats
    stats_parser = sub.add_parser("stats", help="Thống kê tuân thủ")
    stats_parser.add_argument("--days", type=int, default=7)

    # import
    import_parser = sub.add_parser("import", help="Nhập thuốc và lịch nhắc từ JSON")
    import_parser.add_argument("file", type=str)

    # sweep
    sweep_parser = sub.add_parser("sweep", help="Đánh dấu liều bỏ lỡ của một ngày")
    sweep_parser.add_argument("--date", type=date.fromisoformat, default=None)

    # serve
    sub.add_parser("serve", help="Chạy bộ lập lịch nhắc lại và quét liều bỏ lỡ")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING)
    config = load_config(args.config)

    with AdherenceDB(config.database.path) as db:
        match args.command:
            case "today":
                _cmd_today(db, config, args)
            case "take" | "skip" | "snooze":
                _cmd_action(db, config, args)
            case "low-stock":
                _cmd_low_stock(db)
            case "restock":
                _cmd_restock(db, args)
            case "stats":
                _cmd_stats(db, args)
            case "import":
                _cmd_import(db, config, args)
            case "sweep":
                _cmd_sweep(db, config, args)
            case "serve":
                asyncio.run(_cmd_serve(config))


def _cmd_today(db: AdherenceDB, config, args) -> None:
    now = datetime.now()
    day = args.date or now.date()
    processor = build_processor(db, config)
    occurrences = load_day(
        db, day, now,
        classifier=processor.classifier,
        default_times=config.slots.default_times,
    )

    if args.json:
        data = [occurrence_to_record(o) for o in occurrences]
        print(json.dumps(data, ensure_ascii=False, indent=2))
        return

    if not occurrences:
        print(f"Không có liều nào ngày {day.isoformat()}.")
        return
    print(f"💊 Lịch uống thuốc ngày {day.isoformat()} ({len(occurrences)} liều):")
    for o in occurrences:
        med = db.get_medication(o.medication_id)
        name = med.name if med else o.medication_id
        icon = _STATUS_ICONS[o.status]
        print(f"  {o.clock_time} {o.slot_label.value:<5} {name:<20} {icon} {o.status.value}")


def _cmd_action(db: AdherenceDB, config, args) -> None:
    now = args.at or datetime.now()
    day = args.date or now.date()
    processor = build_processor(db, config)
    try:
        occurrence = processor.apply(
            args.reminder_id, args.slot, day, Action(args.command), now
        )
    except InvalidOccurrence as e:
        print(e.user_message, file=sys.stderr)
        sys.exit(1)

    print(f"{occurrence.slot_label.value} {occurrence.clock_time}: {occurrence.status.value}")
    if occurrence.snooze_until:
        print(f"  Sẽ nhắc lại lúc {occurrence.snooze_until:%H:%M}")

    med = db.get_medication(occurrence.medication_id)
    if med is not None and is_low_stock(med):
        print(
            f"  ⚠ {med.name} sắp hết: còn {med.remaining_quantity:g} {med.unit.display}",
        )


def _cmd_low_stock(db: AdherenceDB) -> None:
    meds = db.medications.get_low_stock()
    if not meds:
        print("Không có thuốc nào sắp hết.")
        return
    print(f"⚠ Thuốc sắp hết: {len(meds)}")
    for m in meds:
        print(
            f"  {m.name:<20} còn {m.remaining_quantity:g} {m.unit.display} "
            f"(ngưỡng: {m.low_stock_threshold:g})"
        )


def _cmd_restock(db: AdherenceDB, args) -> None:
    med = db.get_medication(args.medication_id)
    if med is None:
        print(f"Không tìm thấy thuốc: {args.medication_id}", file=sys.stderr)
        sys.exit(1)
    try:
        InventoryTracker().restock(med, args.amount)
    except ValueError as e:
        print(str(e), file=sys.stderr)
        sys.exit(1)
    db.medications.save_medication(med)
    print(f"Đã thêm {args.amount:g} {med.unit.display}, còn {med.remaining_quantity:g}")


def _cmd_stats(db: AdherenceDB, args) -> None:
    end = date.today()
    start = end - timedelta(days=args.days - 1)
    overview = summarize(db.history.get_between(start, end))
    print(f"📊 {start.isoformat()} → {end.isoformat()}")
    print(overview.display())


def _cmd_import(db: AdherenceDB, config, args) -> None:
    with open(args.file, encoding="utf-8") as f:
        data = json.load(f)

    threshold = config.inventory.default_low_stock_threshold
    meds = [medication_from_record(r, threshold) for r in data.get("medications", [])]
    for med in meds:
        db.medications.save_medication(med)

    imported = 0
    for record in data.get("reminders", []):
        reminder = reminder_from_record(record)
        try:
            db.reminders.save_reminder(reminder)
            imported += 1
        except MalformedRecurrence as e:
            print(str(e), file=sys.stderr)
    print(f"Đã nhập {len(meds)} thuốc, {imported} lịch nhắc")


def _cmd_sweep(db: AdherenceDB, config, args) -> None:
    now = datetime.now()
    day = args.date or (now.date() - timedelta(days=1))
    count = sweep_missed(db, build_processor(db, config), day, now)
    print(f"Ngày {day.isoformat()}: {count} liều bỏ lỡ")


async def _cmd_serve(config) -> None:
    scheduler = DoseScheduler(config)
    scheduler.start()
    for job in scheduler.get_jobs():
        print(f"  {job['id']}: {job['next_run']}")
    try:
        await asyncio.Event().wait()
    finally:
        scheduler.stop()
