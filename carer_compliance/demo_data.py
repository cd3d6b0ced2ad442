"""
Demo agency generator.

Builds carers with a realistic spread of document expiry dates: some
expired, some expiring soon and most valid for months ahead. Carer status is
left for the repository to derive.
"""

import random
from datetime import UTC, date, datetime, timedelta

from carer_compliance.models import (
    Carer,
    CarerDocument,
    DocumentStatus,
    DocumentTemplate,
)

FIRST_NAMES = [
    "Sarah", "Michael", "Emma", "James", "Lisa", "Amanda", "Daniel", "Rachel",
    "Matthew", "Lauren", "Anthony", "Stephanie", "Kevin", "Michelle", "Brian",
    "Nicole", "Ryan", "Ashley", "David", "Jessica", "Christopher", "Jennifer",
    "Joshua", "Andrew", "Melissa", "Kenneth", "Deborah", "Paul", "Dorothy",
    "Mark", "Donald", "Nancy", "Steven", "Karen", "Edward", "Betty", "Helen",
    "Ronald", "Sandra", "Donna", "Carol", "Jason", "Ruth", "Sharon",
]

LAST_NAMES = [
    "Johnson", "Brown", "Wilson", "Davis", "Taylor", "Martin", "Garcia",
    "Rodriguez", "Lewis", "Walker", "Hall", "Allen", "Young", "King", "Wright",
    "Green", "Baker", "Nelson", "Carter", "Mitchell", "Perez", "Roberts",
    "Turner", "Phillips", "Campbell", "Parker", "Evans", "Edwards", "Collins",
    "Stewart", "Sanchez", "Morris", "Rogers", "Reed", "Cook", "Morgan", "Bell",
    "Murphy", "Bailey", "Rivera", "Cooper", "Richardson", "Cox", "Howard",
]

TEMPLATES = [
    DocumentTemplate(id="tpl-dbs", name="DBS Certificate", category="Background Checks"),
    DocumentTemplate(id="tpl-first-aid", name="First Aid Certificate", category="Training"),
    DocumentTemplate(id="tpl-care-cert", name="Care Certificate", category="Training"),
    DocumentTemplate(id="tpl-moving", name="Moving & Handling", category="Training"),
    DocumentTemplate(id="tpl-safeguarding", name="Safeguarding Adults", category="Training"),
    DocumentTemplate(id="tpl-medication", name="Medication Training", category="Training"),
    DocumentTemplate(id="tpl-food", name="Food Hygiene Certificate", category="Training"),
    DocumentTemplate(id="tpl-rtw", name="Right to Work", category="Legal"),
    DocumentTemplate(id="tpl-insurance", name="Public Liability Insurance", category="Insurance"),
]

# (min_days, max_days, weight) relative to today
EXPIRY_RANGES = [
    (-180, -1, 0.20),
    (1, 59, 0.25),
    (60, 730, 0.55),
]


def random_expiry_offset(rng: random.Random) -> int:
    low, high, _ = rng.choices(EXPIRY_RANGES, weights=[w for *_, w in EXPIRY_RANGES])[0]
    return rng.randint(low, high)


def lifecycle_status_for(offset: int, rng: random.Random) -> DocumentStatus:
    if offset < 0:
        return DocumentStatus.EXPIRED if rng.random() < 0.8 else DocumentStatus.REJECTED
    if offset < 30:
        return DocumentStatus.PENDING if rng.random() < 0.7 else DocumentStatus.APPROVED
    return DocumentStatus.APPROVED


def _slug(name: str) -> str:
    return "-".join(name.lower().replace("&", "and").split())


def generate_demo_carers(
    agency_id: str,
    count: int,
    today: date,
    rng: random.Random | None = None,
) -> list[Carer]:
    rng = rng or random.Random()
    created_at = datetime.now(UTC)
    carers: list[Carer] = []

    for number in range(1, count + 1):
        first = FIRST_NAMES[(number - 1) % len(FIRST_NAMES)]
        last = rng.choice(LAST_NAMES)
        carer_id = f"{agency_id}-carer-{number}"

        documents = []
        for index, template in enumerate(rng.sample(TEMPLATES, rng.randint(3, 6)), start=1):
            offset = random_expiry_offset(rng)
            status = lifecycle_status_for(offset, rng)
            expires_on = today + timedelta(days=offset)
            issued_on = min(today - timedelta(days=rng.randint(30, 120)), expires_on)
            documents.append(
                CarerDocument(
                    id=f"{carer_id}-doc-{index}",
                    carer_id=carer_id,
                    template_id=template.id,
                    file_path=f"documents/{carer_id}/{_slug(template.name)}.pdf",
                    file_name=f"{template.name.replace(' ', '_')}_{first}_{last}.pdf",
                    file_size=rng.randint(500_000, 5_500_000),
                    mime_type="application/pdf" if rng.random() < 0.8 else "image/jpeg",
                    issued_on=issued_on,
                    expires_on=expires_on,
                    status=status,
                    verified_at=created_at if status == DocumentStatus.APPROVED else None,
                    notes=(
                        "Document quality insufficient, please resubmit"
                        if status == DocumentStatus.REJECTED
                        else None
                    ),
                    created_at=created_at,
                    template=template,
                )
            )

        carers.append(
            Carer(
                id=carer_id,
                agency_id=agency_id,
                first_name=first,
                last_name=last,
                email=f"{first.lower()}.{last.lower()}{number}@example.com",
                phone=f"071{rng.randint(10_000_000, 99_999_999)}",
                employee_id=f"EMP{number:03d}",
                created_at=created_at,
                documents=documents,
            )
        )

    return carers
