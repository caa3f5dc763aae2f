from datetime import date, datetime
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


# --------------------
# Medicine
# --------------------


class MedicineBase(BaseModel):
    name: str = Field(min_length=1)
    brand: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = None
    price: float = Field(ge=0)
    stock: int = Field(ge=0)
    expiry_date: Optional[date] = None


class MedicineCreate(MedicineBase):
    pass


class MedicineUpdate(BaseModel):
    name: Optional[str] = None
    brand: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)
    stock: Optional[int] = Field(default=None, ge=0)
    expiry_date: Optional[date] = None


class Medicine(MedicineBase):
    id: int
    pharmacy_id: int

    model_config = ConfigDict(from_attributes=True)


# --------------------
# Cart
# --------------------


class CartAddIn(BaseModel):
    medicine_id: int


class CartQuantityIn(BaseModel):
    delta: int


class CartLineOut(BaseModel):
    medicine_id: int
    pharmacy_id: int
    pharmacy_name: Optional[str] = None
    name: str
    price: float
    quantity: int
    max_stock: int
    subtotal: float


class CartOut(BaseModel):
    items: List[CartLineOut] = []
    total: float = 0.0
    item_count: int = 0


class CartActionOut(BaseModel):
    accepted: bool
    signal: Optional[str] = None
    message: str
    cart: CartOut


# --------------------
# Orders
# --------------------


class CheckoutIn(BaseModel):
    delivery_address: Optional[str] = None


class OrderItem(BaseModel):
    medicine_id: Optional[int] = None
    pharmacy_id: int
    name: str
    quantity: int
    price: float
    subtotal: float

    model_config = ConfigDict(from_attributes=True)


class OrderPharmacyStatus(BaseModel):
    pharmacy_id: int
    pharmacy_name: Optional[str] = None
    status: str

    model_config = ConfigDict(from_attributes=True)


class Order(BaseModel):
    id: int
    patient_id: int
    delivery_address: Optional[str] = None
    total_amount: float
    created_at: datetime
    items: List[OrderItem] = []
    pharmacies: List[OrderPharmacyStatus] = []

    model_config = ConfigDict(from_attributes=True)


class CheckoutOut(BaseModel):
    order: Order
    stock_sync_failed: bool = False
    message: str


# --------------------
# Appointments
# --------------------


class PatientDetails(BaseModel):
    full_name: str = Field(min_length=1)
    email: EmailStr
    phone: str = Field(min_length=1)
    gender: Literal["male", "female", "other"]
    age: int = Field(ge=1, le=120)
    notes: Optional[str] = None


class AppointmentBookIn(BaseModel):
    doctor_id: int
    date: date
    time_slot: str
    appointment_type: Literal["normal", "urgent"] = "normal"
    patient: PatientDetails


class Appointment(BaseModel):
    id: int
    patient_id: int
    doctor_id: int
    doctor_name: Optional[str] = None
    date: str
    time_slot: str
    type: str
    status: str
    fee: float
    patient_name: str
    patient_email: Optional[str] = None
    patient_phone: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AvailableSlotsOut(BaseModel):
    doctor_id: int
    date: str
    slots: List[str]


# --------------------
# Directory (doctors / hospitals)
# --------------------


class DoctorOut(BaseModel):
    id: int
    name: Optional[str] = None
    specialization: Optional[str] = None
    experience: Optional[int] = None
    consultation_fee: Optional[float] = None
    available_online: bool = False
    rating: Optional[float] = None
    bio: Optional[str] = None


class HospitalOut(BaseModel):
    id: int
    name: Optional[str] = None
    address: Optional[str] = None
    facilities: List[str] = []
    emergency_contact: Optional[str] = None
    ambulance_count: Optional[int] = None
    available_beds: Optional[int] = None


# --------------------
# Notifications
# --------------------


class Notification(BaseModel):
    id: int
    type: str
    title: str
    message: str
    read: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# --------------------
# Medical records & medications
# --------------------


class MedicalRecord(BaseModel):
    id: int
    file_name: str
    record_type: Optional[str] = None
    content_type: Optional[str] = None
    uploaded_by_id: Optional[int] = None
    uploaded_at: datetime
    download_url: str


class DoctorPatientOut(BaseModel):
    patient_id: int
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    last_visit: str
    appointment_count: int


class ReviewOut(BaseModel):
    id: int
    patient_name: str
    rating: int
    comment: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class DoctorReviewsOut(BaseModel):
    average_rating: Optional[float] = None
    count: int
    reviews: List[ReviewOut]


class MedicationIn(BaseModel):
    name: str = Field(min_length=1)
    reminder_time: str


class Medication(BaseModel):
    id: int
    name: str
    reminder_time: str

    model_config = ConfigDict(from_attributes=True)


# --------------------
# Budget
# --------------------


class BudgetOut(BaseModel):
    total_spending: float
    doctor_spending: float
    pharmacy_spending: float


# --------------------
# AI
# --------------------


class AIChatIn(BaseModel):
    message: str
    session_id: Optional[str] = None


class AIChatOut(BaseModel):
    session_id: str
    answer: str
    tool_name: Optional[str] = None
    tool_result: Optional[dict[str, Any]] = None


class SymptomCheckIn(BaseModel):
    symptom_description: str = Field(min_length=1)
    medical_history: Optional[str] = None
    chat_history: Optional[str] = None


class SymptomCheckOut(BaseModel):
    guidance: str
    emergency: bool = False


class MedicalSummaryOut(BaseModel):
    highlights: str
    recent_activity: str
    medication_summary: str


class DoctorPatientSummaryIn(BaseModel):
    patient_id: int
    condition: Optional[str] = None
    current_medicine: Optional[str] = None


class DoctorPatientSummaryOut(BaseModel):
    summary: str


class StockAlertOut(BaseModel):
    medicine_id: int
    name: str
    stock: int
    alert_message: Optional[str] = None


class PatientStockAlertIn(BaseModel):
    product_name: str = Field(min_length=1)
    current_stock: int = Field(ge=0)


class PatientStockAlertOut(BaseModel):
    alert_message: str


# --------------------
# Profile
# --------------------


class ProfileOut(BaseModel):
    id: int
    email: EmailStr
    name: Optional[str] = None
    phone: Optional[str] = None
    role: str
    display_name: str
    profile: dict[str, Any]


class ProfileUpdate(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    profile: Optional[dict[str, Any]] = None


# --------------------
# Speech
# --------------------


class SynthesizeIn(BaseModel):
    text: str = Field(min_length=1, max_length=5000)


class TranscriptionOut(BaseModel):
    transcription: str
