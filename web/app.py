"""Flask JSON API over the shop services."""

import os

from flask import Flask, jsonify, request

from garage import (
    NotFoundError,
    RejectedError,
    Services,
    SparePart,
    build_services,
    load_config,
)
from garage.ledger import parse_int
from garage.records import part_to_dict, payment_to_dict, vendor_to_dict, visit_to_dict
from garage.time_utils import parse_date

app = Flask(__name__)
app.secret_key = os.environ.get("SECRET_KEY", "dev-secret-key-change-in-prod")


def get_services() -> Services:
    """Services for this app, built from config on first use."""
    services = app.config.get("SERVICES")
    if services is None:
        services = build_services(load_config(os.environ.get("GARAGE_CONFIG")))
        app.config["SERVICES"] = services
    return services


def error_response(message: str, status: int = 400, reason=None):
    body = {"error": message}
    if reason is not None:
        body["reason"] = reason.value
    return jsonify(body), status


@app.errorhandler(RejectedError)
def handle_rejected(e: RejectedError):
    status = 404 if isinstance(e, NotFoundError) else 400
    return error_response(e.message, status, e.reason)


def save_failed():
    return error_response("Could not save, please try again", 500)


def visit_json(visit, services: Services) -> dict:
    data = visit_to_dict(visit)
    data["customer"] = services.records.resolve_customer(visit.customer_id).name
    data["vehicle"] = services.records.resolve_vehicle(visit.vehicle_id).label
    return data


def optional_date(name: str):
    value = request.args.get(name)
    return parse_date(value) if value else None


# =============================================================================
# Parts
# =============================================================================


@app.route("/parts", methods=["GET"])
def list_parts():
    """Spare parts, optionally filtered by ?q=."""
    services = get_services()
    parts = services.ledger.search_parts(request.args.get("q"))
    return jsonify([part_to_dict(p) for p in parts])


@app.route("/parts", methods=["POST"])
def create_part():
    """Add or update a spare part from a JSON body."""
    services = get_services()
    data = request.get_json(silent=True) or {}
    part = SparePart(
        part_number=data.get("partNumber", ""),
        name=data.get("name", ""),
        price=data.get("price"),
        cost=data.get("cost"),
        stock=data.get("stock"),
        category=data.get("category"),
        vendor_id=data.get("vendorId"),
        barcode=data.get("barcode"),
        id=data.get("id"),
    )
    if not services.ledger.save_part(part):
        return save_failed()
    return jsonify(part_to_dict(services.ledger.get_part(part.id))), 201


@app.route("/parts/<part_id>/stock", methods=["POST"])
def adjust_part_stock(part_id: str):
    """Add {"delta": n} to a part's stock."""
    services = get_services()
    data = request.get_json(silent=True) or {}
    if services.ledger.get_part(part_id) is None:
        return error_response(f"Part {part_id} not found", 404)
    if not services.ledger.adjust_stock(part_id, data.get("delta", 0)):
        return save_failed()
    return jsonify(part_to_dict(services.ledger.get_part(part_id)))


# =============================================================================
# Vendors
# =============================================================================


@app.route("/vendors", methods=["GET"])
def list_vendors():
    services = get_services()
    return jsonify([vendor_to_dict(v) for v in services.records.get_vendors()])


@app.route("/vendors/<vendor_id>/payments", methods=["GET"])
def list_payments(vendor_id: str):
    services = get_services()
    payments = services.ledger.get_vendor_payments(vendor_id)
    return jsonify([payment_to_dict(p) for p in payments])


@app.route("/vendors/<vendor_id>/payments", methods=["POST"])
def pay_vendor(vendor_id: str):
    """Record {"amount": x, "notes": "..."} paid to a vendor."""
    services = get_services()
    data = request.get_json(silent=True) or {}
    if services.records.get_vendor(vendor_id) is None:
        return error_response(f"Vendor {vendor_id} not found", 404)
    if not services.ledger.record_vendor_payment(
        vendor_id, data.get("amount"), data.get("notes", "")
    ):
        return save_failed()
    return jsonify(vendor_to_dict(services.records.get_vendor(vendor_id))), 201


# =============================================================================
# Visits
# =============================================================================


@app.route("/visits", methods=["GET"])
def list_open_visits():
    """Open (draft) visits, newest first."""
    services = get_services()
    return jsonify([visit_json(v, services) for v, _, _ in services.workflow.open_visits()])


@app.route("/visits/<visit_id>", methods=["GET"])
def get_visit(visit_id: str):
    services = get_services()
    visit = services.records.get_visit(visit_id)
    if visit is None:
        return error_response(f"Visit {visit_id} not found", 404)
    return jsonify(visit_json(visit, services))


@app.route("/visits", methods=["POST"])
def create_visit():
    """
    Create a draft visit.

    Body: customerId, vehicleId, services [{name, cost}], parts
    [{partId, qty}], discount, taxEnabled, notes, technician, mileage,
    paymentMethod, nextVisit {service, date | months, notes}, complete.
    With "complete": true the visit is completed right after saving.
    """
    services = get_services()
    data = request.get_json(silent=True) or {}

    editor = services.workflow.start_visit(data.get("customerId"), data.get("vehicleId"))
    for line in data.get("services") or []:
        editor.add_service(line.get("name"), line.get("cost"))
    for line in data.get("parts") or []:
        editor.add_part_by_id(line.get("partId"), parse_int(line.get("qty", 1), "qty"))
    editor.set_discount(data.get("discount", 0))
    editor.set_tax_enabled(data.get("taxEnabled", False))

    next_visit = data.get("nextVisit")
    if next_visit:
        editor.schedule_next_visit(
            next_visit.get("service"),
            on=next_visit.get("date"),
            after_months=next_visit.get("months"),
            notes=next_visit.get("notes"),
        )

    editor.visit.notes = data.get("notes") or ""
    editor.visit.technician = data.get("technician")
    editor.visit.mileage = data.get("mileage")
    editor.visit.payment_method = data.get("paymentMethod")

    if not editor.save():
        return save_failed()
    if data.get("complete") and not editor.complete():
        return save_failed()
    return jsonify(visit_json(editor.visit, services)), 201


@app.route("/visits/<visit_id>/complete", methods=["POST"])
def complete_visit(visit_id: str):
    services = get_services()
    editor = services.workflow.open_visit(visit_id)
    if not editor.complete():
        return save_failed()
    return jsonify(visit_json(editor.visit, services))


@app.route("/visits/<visit_id>", methods=["DELETE"])
def delete_visit(visit_id: str):
    services = get_services()
    if not services.workflow.delete_visit(visit_id):
        return save_failed()
    return "", 204


# =============================================================================
# Reminders
# =============================================================================


@app.route("/reminders")
def reminders():
    """Vehicles overdue for a service, longest first."""
    services = get_services()
    result = sorted(services.reminders(), key=lambda r: r.days_since, reverse=True)
    return jsonify(
        [
            {
                "vehicleId": r.vehicle_id,
                "customerId": r.customer_id,
                "customer": r.customer_name,
                "mobile": r.mobile,
                "vehicle": r.vehicle,
                "lastServiceDate": r.last_service_date,
                "daysSince": r.days_since,
                "message": r.message,
            }
            for r in result
        ]
    )


@app.route("/upcoming")
def upcoming():
    """Scheduled follow-ups. Query: from, to, window."""
    services = get_services()
    window = request.args.get("window", "all")
    try:
        result = services.upcoming(
            from_date=optional_date("from"), to_date=optional_date("to"), window=window
        )
    except ValueError as e:
        return error_response(str(e))
    return jsonify(
        [
            {
                "visitId": u.visit_id,
                "date": u.date.isoformat(),
                "label": u.label,
                "service": u.service,
                "notes": u.notes,
                "customer": u.customer.name,
                "mobile": u.customer.mobile,
                "vehicle": u.vehicle.label,
                "daysUntil": u.days_until,
            }
            for u in result
        ]
    )


if __name__ == "__main__":
    app.run(debug=True, port=5000)
