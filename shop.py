#!/usr/bin/env python3
"""
Unified CLI for the service shop.

Commands:
  parts        - List spare parts and stock
  add-part     - Add a spare part (stock bought on vendor credit)
  stock        - Add or remove stock for a part
  count        - Apply a physical stock count
  vendors      - List vendors and what the shop owes them
  add-vendor   - Add a vendor
  pay-vendor   - Record a payment to a vendor
  payments     - List vendor payments
  customers    - List customers and their vehicles
  add-customer - Add a customer
  add-vehicle  - Add a vehicle for a customer
  visits       - Show open (draft) visits
  new-visit    - Create a visit from services and parts
  show-visit   - Show a visit's lines and totals
  complete     - Complete a visit and take its parts out of stock
  delete-visit - Delete a draft visit
  reminders    - Vehicles overdue for a service
  upcoming     - Scheduled follow-up visits
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, Tuple

from tabulate import tabulate

from garage import (
    Customer,
    RejectedError,
    Services,
    SparePart,
    Vehicle,
    Vendor,
    Visit,
    build_services,
    load_config,
)
from garage.time_utils import parse_date

logger = logging.getLogger("shop")

# =============================================================================
# Formatting helpers
# =============================================================================


def format_money(amount: Optional[float]) -> str:
    """Format money for display."""
    return f"{amount:,.2f}" if amount is not None else "-"


def format_stock(stock: Optional[int]) -> str:
    """Format stock, flagging parts that ran out or went negative."""
    if stock is None:
        return "-"
    if stock <= 0:
        return f"{stock} (out)"
    return str(stock)


def format_date(timestamp: Optional[str]) -> str:
    """Date part of a stored timestamp."""
    if not timestamp:
        return "-"
    return str(timestamp)[:10]


def truncate(text: Optional[str], max_len: int = 30) -> str:
    """Truncate text with ellipsis if too long."""
    if not text:
        return "-"
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."


def parse_service(text: str) -> Tuple[str, str]:
    """Split 'Oil change=50' into ('Oil change', '50')."""
    if "=" not in text:
        raise argparse.ArgumentTypeError(f"Expected NAME=COST, got '{text}'")
    name, cost = text.rsplit("=", 1)
    return name.strip(), cost.strip()


def parse_part_qty(text: str) -> Tuple[str, int]:
    """Split '12:2' into ('12', 2). Quantity defaults to 1."""
    if ":" in text:
        part_id, qty = text.split(":", 1)
        try:
            return part_id.strip(), int(qty)
        except ValueError:
            raise argparse.ArgumentTypeError(f"Bad quantity in '{text}'")
    return text.strip(), 1


def parse_count(text: str) -> Tuple[str, int]:
    """Split '12=7' into ('12', 7)."""
    if "=" not in text:
        raise argparse.ArgumentTypeError(f"Expected PART_ID=QTY, got '{text}'")
    part_id, qty = text.split("=", 1)
    try:
        return part_id.strip(), int(qty)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Bad quantity in '{text}'")


def make_parts_table(parts: List[SparePart], vendors: List[Vendor]) -> List[List[str]]:
    """Convert spare parts to table rows."""
    names = {str(v.id): v.name for v in vendors}
    rows = []
    for p in parts:
        rows.append(
            [
                p.id,
                p.part_number,
                truncate(p.name),
                names.get(str(p.vendor_id), "-"),
                p.category or "-",
                format_money(p.price),
                format_money(p.cost),
                format_stock(p.stock),
            ]
        )
    return rows


def make_visit_lines(visit: Visit) -> List[List[str]]:
    """Convert visit services and parts to invoice rows."""
    rows = []
    for s in visit.services:
        rows.append(["service", s.name, "", format_money(s.cost), format_money(s.cost)])
    for p in visit.parts:
        rows.append(
            ["part", p.name, p.qty, format_money(p.price), format_money(p.line_total)]
        )
    return rows


def print_rejection(e: RejectedError) -> int:
    print(f"Error: {e.message}")
    return 1


# =============================================================================
# Inventory commands
# =============================================================================


def cmd_parts(args, services: Services):
    """List spare parts and stock."""
    if args.search:
        parts = services.ledger.search_parts(args.search)
    else:
        parts = services.ledger.get_parts()

    if not parts:
        print("No spare parts found.")
        return 0

    headers = ["ID", "Part #", "Name", "Vendor", "Category", "Price", "Cost", "Stock"]
    rows = make_parts_table(parts, services.records.get_vendors())
    print(tabulate(rows, headers=headers, tablefmt="simple"))
    return 0


def cmd_add_part(args, services: Services):
    """Add a spare part."""
    part = SparePart(
        part_number=args.part_number,
        name=args.name,
        price=args.price,
        cost=args.cost,
        stock=args.stock,
        category=args.category,
        vendor_id=args.vendor,
        barcode=args.barcode,
    )

    print("Adding spare part:")
    print(f"  Part #:  {part.part_number}")
    print(f"  Name:    {part.name}")
    print(f"  Price:   {format_money(part.price)}")
    if args.stock:
        print(f"  Stock:   {args.stock}")
    if args.vendor is not None and args.stock:
        print(f"  Credit:  +{format_money(args.cost * args.stock)} owed to vendor {args.vendor}")
    print()

    if args.dry_run:
        print("(dry run - no changes made)")
        return 0

    try:
        saved = services.ledger.save_part(part)
    except RejectedError as e:
        return print_rejection(e)
    if not saved:
        print("Error: could not save part")
        return 1
    print(f"Part saved with id {part.id}.")
    return 0


def cmd_stock(args, services: Services):
    """Add or remove stock for a part."""
    part = services.ledger.get_part(args.part_id)
    if part is None:
        print(f"Error: Unknown part '{args.part_id}'")
        return 1

    print(f"Part:      {part.part_number} {part.name}")
    print(f"Stock:     {part.stock} -> {part.stock + args.delta}")
    print()

    if args.dry_run:
        print("(dry run - no changes made)")
        return 0

    if not services.ledger.adjust_stock(args.part_id, args.delta):
        print("Error: could not update stock")
        return 1
    print("Stock updated.")
    return 0


def cmd_count(args, services: Services):
    """Apply a physical stock count."""
    counts = dict(args.counts)
    try:
        diffs = services.ledger.apply_stock_count(counts)
    except RejectedError as e:
        return print_rejection(e)

    if not diffs:
        print("No stock changes.")
        return 0

    rows = []
    for part_id, diff in diffs.items():
        part = services.ledger.get_part(part_id)
        rows.append([part_id, part.name if part else "-", f"{diff:+d}", format_stock(part.stock if part else None)])
    print(tabulate(rows, headers=["ID", "Name", "Change", "Stock"], tablefmt="simple"))
    return 0


# =============================================================================
# Vendor commands
# =============================================================================


def cmd_vendors(args, services: Services):
    """List vendors and what the shop owes them."""
    vendors = services.records.get_vendors()
    if not vendors:
        print("No vendors found.")
        return 0

    rows = [[v.id, v.name, v.phone or "-", format_money(v.credit)] for v in vendors]
    print(tabulate(rows, headers=["ID", "Name", "Phone", "Owed"], tablefmt="simple"))
    total = sum(v.credit for v in vendors)
    print()
    print(f"Total owed: {format_money(total)}")
    return 0


def cmd_add_vendor(args, services: Services):
    """Add a vendor."""
    vendor = Vendor(name=args.name, credit=args.credit, phone=args.phone)
    if not services.records.save_vendor(vendor):
        print("Error: could not save vendor")
        return 1
    print(f"Vendor saved with id {vendor.id}.")
    return 0


def cmd_pay_vendor(args, services: Services):
    """Record a payment to a vendor."""
    vendor = services.records.get_vendor(args.vendor_id)
    if vendor is None:
        print(f"Error: Unknown vendor '{args.vendor_id}'")
        return 1

    print(f"Vendor:   {vendor.name}")
    print(f"Owed:     {format_money(vendor.credit)}")
    print(f"Payment:  {format_money(args.amount)}")
    print(f"After:    {format_money(vendor.credit - args.amount)}")
    print()

    if args.dry_run:
        print("(dry run - no changes made)")
        return 0

    try:
        paid = services.ledger.record_vendor_payment(args.vendor_id, args.amount, args.notes)
    except RejectedError as e:
        return print_rejection(e)
    if not paid:
        print("Error: could not record payment")
        return 1
    print("Payment recorded.")
    return 0


def cmd_payments(args, services: Services):
    """List vendor payments."""
    payments = services.ledger.get_vendor_payments(args.vendor)
    if not payments:
        print("No payments found.")
        return 0

    names = {str(v.id): v.name for v in services.records.get_vendors()}
    rows = [
        [format_date(p.date), names.get(str(p.vendor_id), "Unknown"), format_money(p.amount), truncate(p.notes)]
        for p in payments
    ]
    print(tabulate(rows, headers=["Date", "Vendor", "Amount", "Notes"], tablefmt="simple"))
    return 0


# =============================================================================
# Customer commands
# =============================================================================


def cmd_customers(args, services: Services):
    """List customers and their vehicles."""
    pairs = services.records.search_vehicles(args.search)
    if not pairs:
        print("No customers found.")
        return 0

    rows = [
        [c.id, c.name, c.mobile or "-", v.id, v.label]
        for c, v in pairs
    ]
    print(
        tabulate(
            rows,
            headers=["Customer", "Name", "Mobile", "Vehicle", "Description"],
            tablefmt="simple",
        )
    )
    return 0


def cmd_add_customer(args, services: Services):
    """Add a customer."""
    customer = Customer(name=args.name, mobile=args.mobile)
    if not services.records.save_customer(customer):
        print("Error: could not save customer")
        return 1
    print(f"Customer saved with id {customer.id}.")
    return 0


def cmd_add_vehicle(args, services: Services):
    """Add a vehicle for a customer."""
    if services.records.get_customer(args.customer_id) is None:
        print(f"Warning: no customer with id {args.customer_id}")
    vehicle = Vehicle(
        customer_id=args.customer_id,
        brand=args.brand,
        model=args.model,
        plate_number=args.plate,
        year=args.year,
    )
    if not services.records.save_vehicle(vehicle):
        print("Error: could not save vehicle")
        return 1
    print(f"Vehicle saved with id {vehicle.id}.")
    return 0


# =============================================================================
# Visit commands
# =============================================================================


def cmd_visits(args, services: Services):
    """Show open (draft) visits."""
    open_visits = services.workflow.open_visits()
    if not open_visits:
        print("No open visits.")
        return 0

    rows = [
        [v.id, format_date(v.created_at), c.name, vh.label, format_money(v.final_total)]
        for v, c, vh in open_visits
    ]
    print(
        tabulate(
            rows, headers=["Visit", "Created", "Customer", "Vehicle", "Total"], tablefmt="simple"
        )
    )
    return 0


def print_visit(visit: Visit, services: Services) -> None:
    customer = services.records.resolve_customer(visit.customer_id)
    vehicle = services.records.resolve_vehicle(visit.vehicle_id)

    print(f"Visit:    #{visit.id or '(unsaved)'} [{visit.status.value}]")
    print(f"Customer: {customer.name} {customer.mobile or ''}".rstrip())
    print(f"Vehicle:  {vehicle.label}")
    if visit.technician:
        print(f"Tech:     {visit.technician}")
    if visit.mileage:
        print(f"Mileage:  {visit.mileage:,.0f} km")
    print()

    lines = make_visit_lines(visit)
    if lines:
        print(tabulate(lines, headers=["Type", "Item", "Qty", "Price", "Total"], tablefmt="simple"))
        print()

    print(f"Subtotal: {format_money(visit.total_cost)}")
    if visit.tax_enabled:
        print(f"{services.config.tax_label}: {format_money(visit.tax)}")
    if visit.discount:
        print(f"Discount: -{format_money(visit.discount)}")
    print(f"TOTAL:    {format_money(visit.final_total)}")
    if visit.next_visit:
        print()
        print(f"Next visit: {visit.next_visit.date} - {visit.next_visit.service}")


def cmd_new_visit(args, services: Services):
    """Create a visit from services and parts."""
    try:
        editor = services.workflow.start_visit(args.customer_id, args.vehicle_id)
        for name, cost in args.service or []:
            editor.add_service(name, cost)
        for part_id, qty in args.part or []:
            editor.add_part_by_id(part_id, qty)
        editor.set_discount(args.discount)
        editor.set_tax_enabled(args.tax)
        if args.next_service:
            editor.schedule_next_visit(
                args.next_service,
                on=parse_date(args.next_date) if args.next_date else None,
                after_months=args.next_months,
            )
    except RejectedError as e:
        return print_rejection(e)

    editor.visit.notes = args.notes or ""
    editor.visit.technician = args.technician
    editor.visit.mileage = args.mileage
    editor.visit.payment_method = args.payment

    print_visit(editor.visit, services)
    print()

    if args.dry_run:
        print("(dry run - no changes made)")
        return 0

    if not editor.save():
        print("Error: could not save visit")
        return 1
    print(f"Draft visit saved: #{editor.visit.id}")
    return 0


def cmd_show_visit(args, services: Services):
    """Show a visit's lines and totals."""
    visit = services.records.get_visit(args.visit_id)
    if visit is None:
        print(f"Error: Unknown visit '{args.visit_id}'")
        return 1
    print_visit(visit, services)
    return 0


def cmd_complete(args, services: Services):
    """Complete a visit and take its parts out of stock."""
    try:
        editor = services.workflow.open_visit(args.visit_id)
    except RejectedError as e:
        return print_rejection(e)

    print_visit(editor.visit, services)
    print()

    if not args.yes:
        answer = input("Complete this visit and deduct its parts from stock? [y/N] ")
        if answer.strip().lower() not in ("y", "yes"):
            print("Not completed.")
            return 1

    try:
        completed = editor.complete()
    except RejectedError as e:
        return print_rejection(e)
    if not completed:
        print("Error: could not save visit")
        return 1
    print(f"Visit #{editor.visit.id} completed.")
    return 0


def cmd_delete_visit(args, services: Services):
    """Delete a draft visit."""
    try:
        deleted = services.workflow.delete_visit(args.visit_id)
    except RejectedError as e:
        return print_rejection(e)
    if not deleted:
        print("Error: could not delete visit")
        return 1
    print(f"Visit #{args.visit_id} deleted.")
    return 0


# =============================================================================
# Reminder commands
# =============================================================================


def cmd_reminders(args, services: Services):
    """Vehicles overdue for a service."""
    reminders = services.reminders()
    if args.urgent_first:
        reminders.sort(key=lambda r: r.days_since, reverse=True)

    if not reminders:
        print("No reminders.")
        return 0

    rows = [
        [r.customer_name, r.mobile or "-", r.vehicle, r.last_service_date, r.days_since]
        for r in reminders
    ]
    print(
        tabulate(
            rows,
            headers=["Customer", "Mobile", "Vehicle", "Last Service", "Days"],
            tablefmt="simple",
        )
    )
    return 0


def cmd_upcoming(args, services: Services):
    """Scheduled follow-up visits."""
    upcoming = services.upcoming(
        from_date=parse_date(args.from_date) if args.from_date else None,
        to_date=parse_date(args.to_date) if args.to_date else None,
        window=args.window,
    )
    if not upcoming:
        print("No upcoming visits found.")
        return 0

    rows = [
        [
            u.date.isoformat(),
            u.label,
            u.customer.name,
            u.customer.mobile or "-",
            u.vehicle.label,
            truncate(u.service),
        ]
        for u in upcoming
    ]
    print(
        tabulate(
            rows,
            headers=["Date", "Status", "Customer", "Mobile", "Vehicle", "Service"],
            tablefmt="simple",
        )
    )
    return 0


# =============================================================================
# Main
# =============================================================================

COMMANDS = {
    "parts": cmd_parts,
    "add-part": cmd_add_part,
    "stock": cmd_stock,
    "count": cmd_count,
    "vendors": cmd_vendors,
    "add-vendor": cmd_add_vendor,
    "pay-vendor": cmd_pay_vendor,
    "payments": cmd_payments,
    "customers": cmd_customers,
    "add-customer": cmd_add_customer,
    "add-vehicle": cmd_add_vehicle,
    "visits": cmd_visits,
    "new-visit": cmd_new_visit,
    "show-visit": cmd_show_visit,
    "complete": cmd_complete,
    "delete-visit": cmd_delete_visit,
    "reminders": cmd_reminders,
    "upcoming": cmd_upcoming,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Service shop visits and inventory",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s add-part OF-100 "Oil filter" --price 12 --cost 7 --stock 20 --vendor 1
  %(prog)s new-visit 1 1 --service "Oil change=50" --part 1:1 --tax
  %(prog)s complete 00001 --yes
  %(prog)s pay-vendor 1 100 --notes "partial"
  %(prog)s reminders --urgent-first
  %(prog)s upcoming --window week
""",
    )
    parser.add_argument("--data-dir", type=Path, help="Record store directory")
    parser.add_argument("--config", type=Path, help="Path to shop config YAML")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log ledger activity")

    subparsers = parser.add_subparsers(dest="command", required=True)

    # Parts
    parts_parser = subparsers.add_parser("parts", help="List spare parts and stock")
    parts_parser.add_argument("--search", type=str, help="Filter by name or part number")

    add_part_parser = subparsers.add_parser("add-part", help="Add a spare part")
    add_part_parser.add_argument("part_number", type=str, help="Part number (unique)")
    add_part_parser.add_argument("name", type=str, help="Part name")
    add_part_parser.add_argument("--price", type=float, required=True, help="Sale price")
    add_part_parser.add_argument("--cost", type=float, default=0, help="Purchase cost")
    add_part_parser.add_argument("--stock", type=int, default=0, help="Initial stock")
    add_part_parser.add_argument("--vendor", type=str, help="Vendor id (stock bought on credit)")
    add_part_parser.add_argument("--category", type=str, help="Category")
    add_part_parser.add_argument("--barcode", type=str, help="Barcode")
    add_part_parser.add_argument(
        "--dry-run", action="store_true", help="Show what would be added without saving"
    )

    stock_parser = subparsers.add_parser("stock", help="Add or remove stock for a part")
    stock_parser.add_argument("part_id", type=str, help="Part id")
    stock_parser.add_argument("delta", type=int, help="Quantity to add (negative to remove)")
    stock_parser.add_argument(
        "--dry-run", action="store_true", help="Show what would change without saving"
    )

    count_parser = subparsers.add_parser("count", help="Apply a physical stock count")
    count_parser.add_argument(
        "counts", type=parse_count, nargs="+", help="Counted quantities as PART_ID=QTY"
    )

    # Vendors
    subparsers.add_parser("vendors", help="List vendors and what the shop owes them")

    add_vendor_parser = subparsers.add_parser("add-vendor", help="Add a vendor")
    add_vendor_parser.add_argument("name", type=str, help="Vendor name")
    add_vendor_parser.add_argument("--credit", type=float, default=0, help="Opening balance owed")
    add_vendor_parser.add_argument("--phone", type=str, help="Phone number")

    pay_parser = subparsers.add_parser("pay-vendor", help="Record a payment to a vendor")
    pay_parser.add_argument("vendor_id", type=str, help="Vendor id")
    pay_parser.add_argument("amount", type=float, help="Amount paid")
    pay_parser.add_argument("--notes", type=str, default="", help="Payment notes")
    pay_parser.add_argument(
        "--dry-run", action="store_true", help="Show what would be recorded without saving"
    )

    payments_parser = subparsers.add_parser("payments", help="List vendor payments")
    payments_parser.add_argument("--vendor", type=str, help="Only this vendor id")

    # Customers
    customers_parser = subparsers.add_parser("customers", help="List customers and vehicles")
    customers_parser.add_argument("--search", type=str, help="Customer name or plate")

    add_customer_parser = subparsers.add_parser("add-customer", help="Add a customer")
    add_customer_parser.add_argument("name", type=str, help="Customer name")
    add_customer_parser.add_argument("--mobile", type=str, help="Mobile number")

    add_vehicle_parser = subparsers.add_parser("add-vehicle", help="Add a vehicle")
    add_vehicle_parser.add_argument("customer_id", type=str, help="Owner customer id")
    add_vehicle_parser.add_argument("brand", type=str, help="Brand, e.g. Toyota")
    add_vehicle_parser.add_argument("model", type=str, help="Model, e.g. Corolla")
    add_vehicle_parser.add_argument("plate", type=str, help="Plate number")
    add_vehicle_parser.add_argument("--year", type=int, help="Model year")

    # Visits
    subparsers.add_parser("visits", help="Show open (draft) visits")

    new_visit_parser = subparsers.add_parser("new-visit", help="Create a draft visit")
    new_visit_parser.add_argument("customer_id", type=str, help="Customer id")
    new_visit_parser.add_argument("vehicle_id", type=str, help="Vehicle id")
    new_visit_parser.add_argument(
        "--service", type=parse_service, action="append", help="Labor line as NAME=COST"
    )
    new_visit_parser.add_argument(
        "--part", type=parse_part_qty, action="append", help="Part line as PART_ID[:QTY]"
    )
    new_visit_parser.add_argument("--discount", type=float, default=0, help="Discount amount")
    new_visit_parser.add_argument("--tax", action="store_true", help="Charge tax")
    new_visit_parser.add_argument("--technician", type=str, help="Technician name")
    new_visit_parser.add_argument("--mileage", type=float, help="Odometer reading")
    new_visit_parser.add_argument("--payment", type=str, help="Payment method")
    new_visit_parser.add_argument("--notes", type=str, help="Visit notes")
    new_visit_parser.add_argument("--next-service", type=str, help="Schedule a follow-up service")
    new_visit_parser.add_argument("--next-date", type=str, help="Follow-up date (YYYY-MM-DD)")
    new_visit_parser.add_argument(
        "--next-months", type=float, help="Follow-up in this many months"
    )
    new_visit_parser.add_argument(
        "--dry-run", action="store_true", help="Show the visit without saving"
    )

    show_parser = subparsers.add_parser("show-visit", help="Show a visit")
    show_parser.add_argument("visit_id", type=str, help="Visit number, e.g. 00001")

    complete_parser = subparsers.add_parser("complete", help="Complete a visit")
    complete_parser.add_argument("visit_id", type=str, help="Visit number")
    complete_parser.add_argument("--yes", action="store_true", help="Do not ask to confirm")

    delete_parser = subparsers.add_parser("delete-visit", help="Delete a draft visit")
    delete_parser.add_argument("visit_id", type=str, help="Visit number")

    # Reminders
    reminders_parser = subparsers.add_parser("reminders", help="Vehicles due for a service")
    reminders_parser.add_argument(
        "--urgent-first", action="store_true", help="Longest since last service first"
    )

    upcoming_parser = subparsers.add_parser("upcoming", help="Scheduled follow-up visits")
    upcoming_parser.add_argument("--from", dest="from_date", type=str, help="From date (YYYY-MM-DD)")
    upcoming_parser.add_argument("--to", dest="to_date", type=str, help="To date (YYYY-MM-DD)")
    upcoming_parser.add_argument(
        "--window",
        choices=["all", "overdue", "today", "tomorrow", "week"],
        default="all",
        help="Only visits in this window (default: all)",
    )

    return parser


def main(argv: Optional[List[str]] = None, services: Optional[Services] = None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if services is None:
        config = load_config(args.config)
        if args.data_dir:
            config.data_dir = args.data_dir
        services = build_services(config)

    level = logging.INFO if args.verbose else services.config.log_level
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    return COMMANDS[args.command](args, services)


if __name__ == "__main__":
    sys.exit(main() or 0)
