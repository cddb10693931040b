"""Unit tests for audience CSV rendering."""

import csv
import io
from datetime import datetime
from decimal import Decimal
from uuid import uuid4

from api.v1.routes.audiences import EXPORT_COLUMNS, render_members_csv
from domain.entities.profile import ProfileSummary


def _summary(email: str | None, user_id: str | None, spend: str) -> ProfileSummary:
    return ProfileSummary(
        profile_id=uuid4(),
        email=email,
        user_id=user_id,
        total_spend=Decimal(spend),
        total_orders=2,
        last_seen_at=datetime(2026, 3, 1, 12, 0),
    )


class TestRenderMembersCsv:
    def test_header_only_when_empty(self) -> None:
        assert render_members_csv([]) == ",".join(EXPORT_COLUMNS) + "\n"

    def test_rows_follow_header(self) -> None:
        text = render_members_csv(
            [_summary("a@x.io", "u1", "150.00"), _summary(None, "u2", "99.10")]
        )

        rows = list(csv.reader(io.StringIO(text)))
        assert rows[0] == ["email", "user_id", "total_spend", "total_orders", "last_seen_at"]
        assert rows[1] == ["a@x.io", "u1", "150.00", "2", "2026-03-01T12:00:00"]
        assert rows[2] == ["", "u2", "99.10", "2", "2026-03-01T12:00:00"]

    def test_values_with_commas_are_quoted(self) -> None:
        text = render_members_csv([_summary('"odd", name@x.io', None, "1.00")])

        rows = list(csv.reader(io.StringIO(text)))
        assert rows[1][0] == '"odd", name@x.io'
