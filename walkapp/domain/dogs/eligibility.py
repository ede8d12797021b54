"""Eligibility gate - whether a dog may be booked for a walk"""

BOOKABLE_ASSESSMENT_STATUSES = frozenset({"approved", "not_required"})


def can_book(dog) -> bool:
    """True iff the dog passed its assessment or was exempted from one"""
    return dog.assessment_status in BOOKABLE_ASSESSMENT_STATUSES
