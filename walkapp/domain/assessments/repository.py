"""Assessment repository - Database operations for assessments"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Assessment


class AssessmentRepository:
    """Repository for assessment database operations"""

    @staticmethod
    def get_assessment_by_id(db: Session, assessment_id: int) -> Optional[Assessment]:
        return db.query(Assessment).filter(Assessment.id == assessment_id).first()

    @staticmethod
    def get_open_for_dog(db: Session, dog_id: int) -> Optional[Assessment]:
        return (
            db.query(Assessment)
            .filter(Assessment.dog_id == dog_id, Assessment.status.in_(["pending", "scheduled"]))
            .first()
        )

    @staticmethod
    def get_assessments(
        db: Session,
        status: Optional[str] = None,
        owner_id: Optional[int] = None,
        walker_id: Optional[int] = None,
    ) -> list[Assessment]:
        query = db.query(Assessment)
        if status is not None:
            query = query.filter(Assessment.status == status)
        if owner_id is not None:
            query = query.filter(Assessment.owner_id == owner_id)
        if walker_id is not None:
            query = query.filter(Assessment.assigned_walker_id == walker_id)
        return query.order_by(Assessment.created_at.desc(), Assessment.id.desc()).all()

    @staticmethod
    def create_assessment(db: Session, **assessment_data) -> Assessment:
        """Add an assessment to the current unit of work. The caller commits."""
        assessment = Assessment(**assessment_data)
        db.add(assessment)
        db.flush()
        return assessment
