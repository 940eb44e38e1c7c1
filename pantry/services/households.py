from sqlalchemy.orm import Session

from pantry.models.household import Household


def get_household(db: Session, household_id: int) -> Household | None:
    return db.query(Household).filter(Household.id == household_id).first()


def lock_household(db: Session, household_id: int) -> Household | None:
    """SELECT ... FOR UPDATE on the tenant row.

    Every inventory mutation takes this lock first, so two purchases or transfers
    in the same household never interleave their read-then-write sequences.
    On SQLite the clause is dropped and BEGIN IMMEDIATE does the job.
    """
    return (
        db.query(Household)
        .filter(Household.id == household_id)
        .with_for_update()
        .first()
    )
