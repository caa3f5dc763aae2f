from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from curelink import crud, models, schemas
from curelink.db import get_db
from curelink.profiles import DoctorProfile, load_profile
from curelink.routes.doctor_routes import reviews_out

router = APIRouter(tags=["Directory"])


def _doctor_out(user: models.User, profile: DoctorProfile) -> schemas.DoctorOut:
    return schemas.DoctorOut(
        id=user.id,
        name=user.name,
        specialization=profile.specialization,
        experience=profile.experience,
        consultation_fee=profile.consultation_fee,
        available_online=profile.available_online,
        rating=profile.rating_average,
        bio=profile.bio,
    )


@router.get("/doctors", response_model=list[schemas.DoctorOut])
def search_doctors(
    specialization: str | None = None,
    min_rating: float | None = Query(None, ge=0, le=5),
    db: Session = Depends(get_db),
):
    return [_doctor_out(user, profile) for user, profile in crud.search_doctors(db, specialization, min_rating)]


@router.get("/doctors/{doctor_id}", response_model=schemas.DoctorOut)
def get_doctor(doctor_id: int, db: Session = Depends(get_db)):
    user = crud.get_user_with_role(db, doctor_id, "doctor")
    profile = load_profile(user)
    if not isinstance(profile, DoctorProfile):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Doctor not found")
    return _doctor_out(user, profile)


@router.get("/hospitals", response_model=list[schemas.HospitalOut])
def search_hospitals(
    facilities: list[str] | None = Query(None),
    db: Session = Depends(get_db),
):
    out = []
    for user, profile in crud.search_hospitals(db, facilities):
        out.append(
            schemas.HospitalOut(
                id=user.id,
                name=profile.hospital_name or user.name,
                address=profile.address,
                facilities=profile.facilities,
                emergency_contact=profile.emergency_contact,
                ambulance_count=profile.ambulance_count,
                available_beds=profile.available_beds,
            )
        )
    return out


@router.get("/doctors/{doctor_id}/reviews", response_model=schemas.DoctorReviewsOut)
def get_doctor_reviews(doctor_id: int, db: Session = Depends(get_db)):
    crud.get_user_with_role(db, doctor_id, "doctor")
    return reviews_out(crud.list_reviews_for_doctor(db, doctor_id))
