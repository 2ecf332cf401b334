import pytest
from fastapi import HTTPException
from pydantic import ValidationError

from scheduler.models.availability import AvailabilityWindow
from scheduler.routes.provider_routes import CreateProviderRequest, create_provider, get_provider


@pytest.fixture(autouse=True)
def skip_schema_check(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr('scheduler.routes.provider_routes.ensure_database_ready', lambda: None)


def test_create_provider_request_normalizes_email() -> None:
    request = CreateProviderRequest(email=' Lawyer@Firm.COM ', timezone='America/Bogota')

    assert request.email == 'lawyer@firm.com'
    assert request.timezone == 'America/Bogota'


def test_create_provider_request_rejects_unknown_timezone() -> None:
    with pytest.raises(ValidationError):
        CreateProviderRequest(email='lawyer@firm.com', timezone='Mars/Olympus')


def test_create_provider_seeds_default_availability(db) -> None:
    provider = create_provider(data=CreateProviderRequest(email='lawyer@firm.com'), db=db)

    assert provider.id is not None
    assert db.query(AvailabilityWindow).filter(AvailabilityWindow.provider_id == provider.id).count() == 10


def test_create_provider_without_seeding(db) -> None:
    create_provider(data=CreateProviderRequest(email='lawyer@firm.com', seed_default_availability=False), db=db)

    assert db.query(AvailabilityWindow).count() == 0


def test_create_provider_rejects_duplicate_email(db, provider) -> None:
    with pytest.raises(HTTPException) as exception_info:
        create_provider(data=CreateProviderRequest(email=provider.email), db=db)

    assert exception_info.value.status_code == 409


def test_get_provider(db, provider) -> None:
    assert get_provider(provider_id=provider.id, db=db).email == provider.email

    with pytest.raises(HTTPException) as exception_info:
        get_provider(provider_id=404, db=db)

    assert exception_info.value.status_code == 404
