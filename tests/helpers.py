"""Builders for voter rows, record payloads, upload workbooks and stored records used across tests."""

import io
import uuid
from typing import Any

import pandas as pd
from sqlalchemy.ext.asyncio import AsyncSession

from voter_intake.lib.intake import EXPECTED_HEADERS
from voter_intake.models.submission_batch import SubmissionBatch
from voter_intake.models.voter_submission import VoterSubmission


def voter_row(index: int = 0, **overrides: Any) -> dict[str, Any]:
    """A complete, valid spreadsheet row keyed by template header."""
    row: dict[str, Any] = {
        "Surname": "Reddy",
        "Name": f"Voter {index}",
        "Father/Husband Name": "Ramesh",
        "Gender": "Female",
        "Age": 30 + index % 50,
        "Qualification": "Graduate",
        "Caste": "OC",
        "Sub-Caste": "",
        "PC": "Guntur",
        "AC": "Tenali",
        "Mandal/Ward/Division": "Ward 4",
        "Panchayat Name": "Kollipara",
        "Village Name": "Annavaram",
        "Booth": "112",
        "VoterID": f"ABC{index:07d}",
        "PhoneNumber-10digit": f"98{index:08d}",
    }
    row.update(overrides)
    return row


def voter_fields(index: int = 0, **overrides: Any) -> dict[str, Any]:
    """A complete, valid record keyed by record field name."""
    fields: dict[str, Any] = {
        "surname": "Reddy",
        "name": f"Voter {index}",
        "father_husband_name": "Ramesh",
        "gender": "Female",
        "age": 35,
        "qualification": "Graduate",
        "caste": "OC",
        "sub_caste": None,
        "parliamentary_constituency": "Guntur",
        "assembly_constituency": "Tenali",
        "mandal_ward_division": "Ward 4",
        "panchayat_name": "Kollipara",
        "village_name": "Annavaram",
        "booth": "112",
        "voter_id": f"ABC{index:07d}",
        "phone_number": f"98{index:08d}",
    }
    fields.update(overrides)
    return fields


def build_xlsx(rows: list[dict[str, Any]], headers: tuple[str, ...] | list[str] = EXPECTED_HEADERS) -> bytes:
    """Write rows (keyed by header) to an ``.xlsx`` workbook with ``headers`` as row 1."""
    frame = pd.DataFrame([[row.get(h, "") for h in headers] for row in rows], columns=list(headers))
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        frame.to_excel(writer, sheet_name="Voter Template", index=False)
    return buffer.getvalue()


def build_csv(rows: list[dict[str, Any]], delimiter: str = ",") -> bytes:
    """Write rows (keyed by header) as CSV text under the template header row."""
    lines = [delimiter.join(EXPECTED_HEADERS)]
    lines.extend(delimiter.join(str(row.get(h, "")) for h in EXPECTED_HEADERS) for row in rows)
    return ("\n".join(lines) + "\n").encode("utf-8")


async def store_submission(
    session: AsyncSession,
    owner_id: uuid.UUID,
    index: int = 0,
    *,
    status: str = "draft",
    batch_id: uuid.UUID | None = None,
    **overrides: Any,
) -> VoterSubmission:
    """Persist a voter record directly, bypassing the services."""
    record = VoterSubmission(
        **voter_fields(index, **overrides),
        status=status,
        batch_id=batch_id,
        submitted_by=owner_id,
    )
    session.add(record)
    await session.commit()
    await session.refresh(record)
    return record


async def store_batch(
    session: AsyncSession, owner_id: uuid.UUID, *, status: str = "draft", name: str = "March upload"
) -> SubmissionBatch:
    """Persist an empty submission batch."""
    batch = SubmissionBatch(batch_name=name, status=status, submitted_by=owner_id)
    session.add(batch)
    await session.commit()
    await session.refresh(batch)
    return batch
