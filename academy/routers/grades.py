from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from academy.core.deps import get_db
from academy.schemas.gpa import ClassGPARead, CumulativeGPARead
from academy.services.gpa import GPACalculator

router = APIRouter()


@router.get("/students/{student_id}/classes/{class_id}/gpa", response_model=ClassGPARead)
def class_gpa(
    student_id: int,
    class_id: int,
    db: Session = Depends(get_db),
):
    return GPACalculator(db).compute_class_gpa(student_id, class_id)


@router.get("/students/{student_id}/gpa", response_model=CumulativeGPARead)
def cumulative_gpa(
    student_id: int,
    db: Session = Depends(get_db),
):
    return GPACalculator(db).compute_cumulative_gpa(student_id)
