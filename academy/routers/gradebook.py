import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from academy.core.deps import get_db
from academy.core.permissions import require_admin
from academy.schemas.gradebook import GradeCreate, GradeRecordRead, ReconcileSummary
from academy.services.reconciler import GradebookReconciler

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/reconcile",
    response_model=ReconcileSummary,
    dependencies=[Depends(require_admin)],
)
def reconcile_gradebook(
    class_id: int | None = None,
    db: Session = Depends(get_db),
):
    result = GradebookReconciler(db).reconcile(class_id)
    logger.info("admin reconcile class=%s -> %d inserted", class_id, result.reconciled_count)
    return result


@router.post(
    "/grades",
    response_model=GradeRecordRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
def record_grade(
    payload: GradeCreate,
    db: Session = Depends(get_db),
):
    return GradebookReconciler(db).record_grade(payload.student_id, payload.item_id, payload.score)


@router.get(
    "/classes/{class_id}/students/{student_id}",
    response_model=list[GradeRecordRead],
)
def student_gradebook(
    class_id: int,
    student_id: int,
    db: Session = Depends(get_db),
):
    return GradebookReconciler(db).gradebook_for(student_id, class_id)
