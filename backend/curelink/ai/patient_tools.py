from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from rapidfuzz import fuzz

from curelink import crud
from curelink.ai.registry import ToolContext, ToolRegistry
from curelink.medications import SqlMedicationStore


class _Args(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class SearchDoctorsArgs(_Args):
    specialization: str = Field(min_length=1, description="Doctor's specialization (e.g., cardiologist, neurologist)")
    min_rating: float | None = Field(default=None, ge=0, le=5, alias="minRating", description="Minimum rating (0-5)")


class SearchMedicinesArgs(_Args):
    query: str = Field(min_length=1, description="Search query (medicine name or condition)")
    category: str | None = Field(default=None, description="Medicine category")
    max_price: float | None = Field(default=None, ge=0, alias="maxPrice", description="Maximum price budget")
    sort_by: Literal["price", "name", "relevance"] | None = Field(default=None, alias="sortBy", description="Sort order")


class GetAppointmentsArgs(_Args):
    filter: Literal["upcoming", "past", "today", "all"] = Field(description="Filter type")
    limit: int = Field(default=10, ge=1, le=50, description="Number of results to return")


class GetOrderDetailsArgs(_Args):
    order_id: str | None = Field(default=None, alias="orderId", description="Specific order ID")
    total_amount: float | None = Field(default=None, alias="totalAmount", description="Search by total amount")
    status: str | None = Field(default=None, description="Order status")


class SearchHospitalsArgs(_Args):
    facilities: list[str] | None = Field(default=None, description="Required facilities (ICU, Emergency, etc.)")


class GetMedicalRecordsArgs(_Args):
    limit: int = Field(default=10, ge=1, le=50, description="Number of records to return")
    type: str | None = Field(default=None, description="Record type (prescription, lab report, etc.)")


class NoArgs(_Args):
    pass


def _search_doctors(args: SearchDoctorsArgs, ctx: ToolContext) -> dict:
    found = crud.search_doctors(ctx.db, specialization=args.specialization, min_rating=args.min_rating)
    doctors = [
        {
            "id": user.id,
            "name": user.name,
            "specialization": profile.specialization,
            "rating": profile.rating_average,
            "consultationFee": profile.consultation_fee,
            "availableOnline": profile.available_online,
        }
        for user, profile in found
    ]
    return {"success": True, "count": len(doctors), "doctors": doctors}


def _search_medicines(args: SearchMedicinesArgs, ctx: ToolContext) -> dict:
    sort_by = "price_asc" if args.sort_by == "price" else None
    rows = crud.search_medicines(
        ctx.db,
        query=args.query,
        category=args.category,
        max_price=args.max_price,
        sort_by=sort_by,
        limit=20,
    )
    suggested = False
    if not rows and not args.category and args.max_price is None:
        rows = crud.fuzzy_medicine_matches(ctx.db, args.query)
        suggested = bool(rows)
    elif args.sort_by == "relevance":
        needle = args.query.lower()
        rows = sorted(rows, key=lambda m: fuzz.WRatio(needle, m.name.lower()), reverse=True)

    medicines = [
        {
            "id": m.id,
            "name": m.name,
            "brand": m.brand,
            "category": m.category,
            "price": m.price,
            "inStock": m.stock > 0,
            "pharmacyId": m.pharmacy_id,
        }
        for m in rows
    ]
    result = {"success": True, "count": len(medicines), "medicines": medicines}
    if suggested:
        result["didYouMean"] = True
    return result


def _get_appointments(args: GetAppointmentsArgs, ctx: ToolContext) -> dict:
    today = ctx.today.isoformat()
    rows = crud.list_appointments_for_patient(ctx.db, ctx.user.id)
    if args.filter == "upcoming":
        rows = sorted((a for a in rows if a.date >= today), key=lambda a: (a.date, a.id))
    elif args.filter == "past":
        rows = [a for a in rows if a.date < today]
    elif args.filter == "today":
        rows = [a for a in rows if a.date == today]
    appointments = [
        {
            "id": a.id,
            "doctorName": a.doctor_name,
            "date": a.date,
            "timeSlot": a.time_slot,
            "type": a.type,
            "status": a.status,
            "fee": a.fee,
        }
        for a in rows[: args.limit]
    ]
    return {"success": True, "count": len(appointments), "appointments": appointments}


def _get_order_details(args: GetOrderDetailsArgs, ctx: ToolContext) -> dict:
    orders = crud.list_orders_for_patient(ctx.db, ctx.user.id)
    if args.order_id:
        orders = [o for o in orders if str(o.id) == args.order_id.strip().lstrip("#")]
    if args.total_amount is not None:
        orders = [o for o in orders if abs(o.total_amount - args.total_amount) < 0.01]
    if args.status:
        wanted = args.status.strip().lower()
        orders = [o for o in orders if any(p.status == wanted for p in o.pharmacies)]
    if args.order_id and not orders:
        return {"success": False, "error": f"Order {args.order_id} not found"}
    return {
        "success": True,
        "count": len(orders),
        "orders": [
            {
                "id": o.id,
                "totalAmount": o.total_amount,
                "createdAt": o.created_at.isoformat(),
                "pharmacies": [{"name": p.pharmacy_name, "status": p.status} for p in o.pharmacies],
                "items": [{"name": i.name, "quantity": i.quantity, "subtotal": i.subtotal} for i in o.items],
            }
            for o in orders[:10]
        ],
    }


def _search_hospitals(args: SearchHospitalsArgs, ctx: ToolContext) -> dict:
    found = crud.search_hospitals(ctx.db, facilities=args.facilities)
    hospitals = [
        {
            "id": user.id,
            "name": profile.hospital_name or user.name,
            "address": profile.address,
            "facilities": profile.facilities,
            "emergencyContact": profile.emergency_contact,
            "ambulanceCount": profile.ambulance_count,
            "availableBeds": profile.available_beds,
        }
        for user, profile in found
    ]
    return {"success": True, "count": len(hospitals), "hospitals": hospitals}


def _get_medical_records(args: GetMedicalRecordsArgs, ctx: ToolContext) -> dict:
    rows = crud.list_medical_records(ctx.db, ctx.user.id, record_type=args.type, limit=args.limit)
    records = [
        {"id": r.id, "fileName": r.file_name, "type": r.record_type, "uploadedAt": r.uploaded_at.isoformat()}
        for r in rows
    ]
    return {"success": True, "count": len(records), "records": records}


def _get_budget_and_spending(args: NoArgs, ctx: ToolContext) -> dict:
    spending = crud.patient_spending(ctx.db, ctx.user.id)
    return {
        "success": True,
        "totalSpending": spending["total_spending"],
        "doctorSpending": spending["doctor_spending"],
        "pharmacySpending": spending["pharmacy_spending"],
    }


def _get_active_medications(args: NoArgs, ctx: ToolContext) -> dict:
    entries = SqlMedicationStore(ctx.db, ctx.user.id).entries()
    return {
        "success": True,
        "count": len(entries),
        "medications": [{"name": e.name, "reminderTime": e.reminder_time} for e in entries],
    }


def build_patient_registry() -> ToolRegistry:
    registry = ToolRegistry()
    registry.register(
        "searchDoctors",
        "Search for doctors by specialization and minimum rating",
        SearchDoctorsArgs,
    )(_search_doctors)
    registry.register(
        "searchMedicines",
        "Search for medicines by name, category, or condition",
        SearchMedicinesArgs,
    )(_search_medicines)
    registry.register(
        "getAppointments",
        "Get patient's appointments (upcoming, past, today or all)",
        GetAppointmentsArgs,
    )(_get_appointments)
    registry.register(
        "getOrderDetails",
        "Get details of a specific order or search orders",
        GetOrderDetailsArgs,
    )(_get_order_details)
    registry.register(
        "searchHospitals",
        "Search hospitals by facilities",
        SearchHospitalsArgs,
    )(_search_hospitals)
    registry.register(
        "getMedicalRecords",
        "Get patient's uploaded medical records",
        GetMedicalRecordsArgs,
    )(_get_medical_records)
    registry.register(
        "getBudgetAndSpending",
        "Get the patient's total spending on doctors and pharmacy orders",
        NoArgs,
    )(_get_budget_and_spending)
    registry.register(
        "getActiveMedications",
        "Get the patient's active medications and reminder times",
        NoArgs,
    )(_get_active_medications)
    return registry
