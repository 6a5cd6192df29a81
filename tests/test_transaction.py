from datetime import date

import pytest

from models import db
from models.season import Season
from services.errors import ConflictError, ValidationError
from services.transaction import atomic


def add_season(year):
    db.session.add(Season(year=year, name=f"{year} Season", start_date=date(year, 5, 1),
                          end_date=date(year, 9, 30), is_active=False))


def test_commits_on_success(ctx):
    with atomic("add season"):
        add_season(2025)

    db.session.expire_all()
    assert Season.query.count() == 1


@pytest.mark.parametrize("error", [ValidationError("bad"), RuntimeError("boom"), KeyError("x")])
def test_rolls_back_on_any_error(ctx, error):
    with pytest.raises(type(error)):
        with atomic("add season"):
            add_season(2025)
            db.session.flush()
            raise error

    assert Season.query.count() == 0


def test_integrity_violation_becomes_conflict(ctx):
    with atomic("add season"):
        add_season(2025)

    with pytest.raises(ConflictError):
        with atomic("add duplicate season"):
            add_season(2025)

    assert Season.query.count() == 1
