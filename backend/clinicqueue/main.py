from typing import List
import logging

from fastapi import Depends, FastAPI, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .domain import Outcome, Patient
from .domain.exceptions import DomainError, InvalidTransitionError, NotFoundError, PersistenceError
from .policies import allow
from .schemas import (
    ApiState,
    DoctorOut,
    OutcomeOut,
    PatientCreate,
    PatientOut,
    ReconcileOut,
    StatusRequest,
    SummaryOut,
)
from .storage import store

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="ClinicQueue", version="1.0.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _serialize_patient(patient: Patient) -> PatientOut:
    return PatientOut.model_validate(patient)


def _serialize_outcome(outcome: Outcome) -> OutcomeOut:
    if outcome.persistence_warning:
        logger.warning("Responding with unsaved changes: %s", outcome.persistence_warning)
    return OutcomeOut(
        patient_id=outcome.patient_id,
        promoted_id=outcome.promoted_id,
        doctor_status=outcome.doctor_status,
        patients=[_serialize_patient(p) for p in outcome.patients],
        persistence_warning=outcome.persistence_warning,
    )


def _serialize_summary(summary: dict) -> SummaryOut:
    in_chair = summary["in_treatment"]
    return SummaryOut(
        **{**summary, "in_treatment": _serialize_patient(in_chair) if in_chair else None}
    )


def _handle_domain_error(err: DomainError) -> None:
    if isinstance(err, NotFoundError):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(err, InvalidTransitionError):
        code = status.HTTP_409_CONFLICT
    elif isinstance(err, PersistenceError):
        code = status.HTTP_503_SERVICE_UNAVAILABLE
    else:
        code = status.HTTP_400_BAD_REQUEST
    raise HTTPException(status_code=code, detail=str(err)) from err


@app.get("/clinics/{clinic_id}/patients", response_model=List[PatientOut])
def list_patients(clinic_id: str, board: bool = False, _role=Depends(allow("read"))):
    try:
        service = store.service(clinic_id)
        patients = service.board() if board else service.snapshot()
        return [_serialize_patient(p) for p in patients]
    except DomainError as err:
        _handle_domain_error(err)


@app.get("/clinics/{clinic_id}/patients/{patient_id}", response_model=PatientOut)
def get_patient(clinic_id: str, patient_id: str, _role=Depends(allow("read"))):
    try:
        return _serialize_patient(store.service(clinic_id).get(patient_id))
    except DomainError as err:
        _handle_domain_error(err)


@app.post("/clinics/{clinic_id}/patients", response_model=OutcomeOut, status_code=status.HTTP_201_CREATED)
def register_patient(clinic_id: str, payload: PatientCreate, _role=Depends(allow("register"))):
    try:
        outcome = store.service(clinic_id).register_patient(
            payload.name,
            payload.phone,
            payload.treatment,
            payload.appointment_type,
            scheduled_time=payload.scheduled_time,
        )
        return _serialize_outcome(outcome)
    except DomainError as err:
        _handle_domain_error(err)


@app.post("/clinics/{clinic_id}/patients/{patient_id}/arrive", response_model=OutcomeOut)
def mark_arrived(clinic_id: str, patient_id: str, _role=Depends(allow("arrive"))):
    try:
        return _serialize_outcome(store.service(clinic_id).mark_arrived(patient_id))
    except DomainError as err:
        _handle_domain_error(err)


@app.post("/clinics/{clinic_id}/patients/{patient_id}/complete", response_model=OutcomeOut)
def complete_treatment(clinic_id: str, patient_id: str, _role=Depends(allow("complete"))):
    try:
        return _serialize_outcome(store.service(clinic_id).complete_treatment(patient_id))
    except DomainError as err:
        _handle_domain_error(err)


@app.post("/clinics/{clinic_id}/patients/{patient_id}/cancel", response_model=OutcomeOut)
def cancel(clinic_id: str, patient_id: str, _role=Depends(allow("cancel"))):
    try:
        return _serialize_outcome(store.service(clinic_id).cancel(patient_id))
    except DomainError as err:
        _handle_domain_error(err)


@app.post("/clinics/{clinic_id}/patients/{patient_id}/status", response_model=OutcomeOut)
def update_status(clinic_id: str, patient_id: str, payload: StatusRequest, _role=Depends(allow("update_status"))):
    try:
        return _serialize_outcome(store.service(clinic_id).update_status(patient_id, payload.status))
    except DomainError as err:
        _handle_domain_error(err)


@app.get("/clinics/{clinic_id}/doctor", response_model=DoctorOut)
def doctor_status(clinic_id: str, _role=Depends(allow("read"))):
    try:
        return DoctorOut(status=store.service(clinic_id).doctor_status)
    except DomainError as err:
        _handle_domain_error(err)


@app.post("/clinics/{clinic_id}/doctor/toggle", response_model=OutcomeOut)
def toggle_doctor_availability(clinic_id: str, _role=Depends(allow("toggle_availability"))):
    try:
        return _serialize_outcome(store.service(clinic_id).toggle_doctor_availability())
    except DomainError as err:
        _handle_domain_error(err)


@app.get("/clinics/{clinic_id}/slots", response_model=List[str])
def available_slots(clinic_id: str, _role=Depends(allow("read"))):
    try:
        return store.service(clinic_id).available_slots()
    except DomainError as err:
        _handle_domain_error(err)


@app.get("/clinics/{clinic_id}/summary", response_model=SummaryOut)
def summary(clinic_id: str, _role=Depends(allow("read"))):
    try:
        return _serialize_summary(store.service(clinic_id).summary())
    except DomainError as err:
        _handle_domain_error(err)


@app.post("/clinics/{clinic_id}/reconcile", response_model=ReconcileOut)
def reconcile(clinic_id: str, _role=Depends(allow("reconcile"))):
    try:
        return ReconcileOut(pending=store.service(clinic_id).reconcile())
    except DomainError as err:
        _handle_domain_error(err)


@app.get("/clinics/{clinic_id}/state", response_model=ApiState)
def clinic_state(clinic_id: str, _role=Depends(allow("read"))):
    try:
        service = store.service(clinic_id)
        return ApiState(
            doctor_status=service.doctor_status,
            patients=[_serialize_patient(p) for p in service.board()],
            slots=service.available_slots(),
            summary=_serialize_summary(service.summary()),
        )
    except DomainError as err:
        _handle_domain_error(err)


@app.get("/state", response_model=ApiState)
def current_state(_role=Depends(allow("read"))):
    return clinic_state(settings.default_clinic_id)
