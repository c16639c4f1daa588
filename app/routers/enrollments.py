# app/routers/enrollments.py
from typing import List

from fastapi import APIRouter, Depends

from app.schemas.common import Envelope, ok
from app.schemas.enrollment import EnrollIn, EnrollmentOut
from app.services.enrollments import EnrollmentLedger, get_enrollment_ledger
from app.utils.auth import get_current_user_id

router = APIRouter(prefix="/enrollments", tags=["Enrollments"])


# 選課
@router.post("", response_model=Envelope[EnrollmentOut], status_code=201)
def enroll(
    body: EnrollIn,
    user_id: str = Depends(get_current_user_id),
    ledger: EnrollmentLedger = Depends(get_enrollment_ledger),
):
    enrollment = ledger.enroll(user_id, body.course_id)
    return ok(EnrollmentOut.from_record(enrollment))


# 我的選課
@router.get("", response_model=Envelope[List[EnrollmentOut]])
def list_my_enrollments(
    user_id: str = Depends(get_current_user_id),
    ledger: EnrollmentLedger = Depends(get_enrollment_ledger),
):
    return ok([EnrollmentOut.from_record(e) for e in ledger.list_for_user(user_id)])


@router.get("/{enrollment_id}", response_model=Envelope[EnrollmentOut])
def get_enrollment(
    enrollment_id: int,
    user_id: str = Depends(get_current_user_id),
    ledger: EnrollmentLedger = Depends(get_enrollment_ledger),
):
    return ok(EnrollmentOut.from_record(ledger.get_for_user(enrollment_id, user_id)))


# 退選
@router.post("/{enrollment_id}/cancel", response_model=Envelope[EnrollmentOut])
def cancel_enrollment(
    enrollment_id: int,
    user_id: str = Depends(get_current_user_id),
    ledger: EnrollmentLedger = Depends(get_enrollment_ledger),
):
    return ok(EnrollmentOut.from_record(ledger.cancel(enrollment_id, user_id)))


# 修畢
@router.post("/{enrollment_id}/complete", response_model=Envelope[EnrollmentOut])
def complete_enrollment(
    enrollment_id: int,
    user_id: str = Depends(get_current_user_id),
    ledger: EnrollmentLedger = Depends(get_enrollment_ledger),
):
    return ok(EnrollmentOut.from_record(ledger.complete(enrollment_id, user_id)))
