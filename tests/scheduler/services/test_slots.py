from datetime import date, datetime

import pytest
import pytz

from scheduler.core.errors import ValidationError
from scheduler.models.appointment import AppointmentStatus
from scheduler.models.provider import Provider
from scheduler.services import slots as slots_module
from scheduler.services.overlap import overlaps, to_utc_naive
from scheduler.services.slots import generate_slots

MONDAY = date(2026, 1, 5)


def utc(hour: int, minute: int = 0, day: int = 5) -> datetime:
    return pytz.UTC.localize(datetime(2026, 1, day, hour, minute))


def naive(hour: int, minute: int = 0, day: int = 5) -> datetime:
    return datetime(2026, 1, day, hour, minute)


def as_pairs(slots):
    return [(slot.start_time, slot.end_time) for slot in slots]


def test_hourly_slots_fill_the_window(db, provider, add_window) -> None:
    add_window(provider.id, 1, '09:00', '12:00')

    slots = generate_slots(provider.id, MONDAY, 60, db, provider_timezone='UTC')

    assert as_pairs(slots) == [
        (utc(9), utc(10)),
        (utc(10), utc(11)),
        (utc(11), utc(12)),
    ]


def test_booked_appointment_removes_its_slot(db, provider, add_window, add_appointment) -> None:
    add_window(provider.id, 1, '09:00', '12:00')
    add_appointment(provider.id, naive(10), naive(11))

    slots = generate_slots(provider.id, MONDAY, 60, db, provider_timezone='UTC')

    assert as_pairs(slots) == [(utc(9), utc(10)), (utc(11), utc(12))]


def test_cancelled_appointment_does_not_remove_slots(db, provider, add_window, add_appointment) -> None:
    add_window(provider.id, 1, '09:00', '12:00')
    add_appointment(provider.id, naive(10), naive(11), status=AppointmentStatus.CANCELLED)

    assert len(generate_slots(provider.id, MONDAY, 60, db, provider_timezone='UTC')) == 3


def test_block_removes_every_slot_it_touches(db, provider, add_window, add_block) -> None:
    add_window(provider.id, 1, '09:00', '12:00')
    add_block(provider.id, naive(10, 30), naive(11, 30))

    slots = generate_slots(provider.id, MONDAY, 60, db, provider_timezone='UTC')

    assert as_pairs(slots) == [(utc(9), utc(10))]


def test_block_ending_on_slot_boundary_keeps_next_slot(db, provider, add_window, add_block) -> None:
    add_window(provider.id, 1, '09:00', '12:00')
    add_block(provider.id, naive(10, 30), naive(11))

    slots = generate_slots(provider.id, MONDAY, 60, db, provider_timezone='UTC')

    assert as_pairs(slots) == [(utc(9), utc(10)), (utc(11), utc(12))]


def test_partial_final_slot_is_dropped(db, provider, add_window) -> None:
    add_window(provider.id, 1, '09:00', '10:45')

    slots = generate_slots(provider.id, MONDAY, 30, db, provider_timezone='UTC')

    assert as_pairs(slots) == [
        (utc(9), utc(9, 30)),
        (utc(9, 30), utc(10)),
        (utc(10), utc(10, 30)),
    ]


def test_slots_across_windows_are_chronological(db, provider, add_window) -> None:
    add_window(provider.id, 1, '14:00', '16:00')
    add_window(provider.id, 1, '09:00', '11:00')

    slots = generate_slots(provider.id, MONDAY, 60, db, provider_timezone='UTC')

    starts = [slot.start_time for slot in slots]
    assert starts == [utc(9), utc(10), utc(14), utc(15)]


def test_day_without_windows_returns_empty_without_further_queries(
    db, provider, add_window, monkeypatch: pytest.MonkeyPatch,
) -> None:
    add_window(provider.id, 2, '09:00', '12:00')

    def fail(*args, **kwargs):
        raise AssertionError('should not be called')

    monkeypatch.setattr(slots_module.blocked_ranges, 'list_overlapping', fail)
    monkeypatch.setattr(slots_module, 'list_provider_appointments', fail)

    assert generate_slots(provider.id, MONDAY, 60, db, provider_timezone='UTC') == []


def test_inactive_windows_produce_no_slots(db, provider, add_window) -> None:
    add_window(provider.id, 1, '09:00', '12:00', is_active=False)

    assert generate_slots(provider.id, MONDAY, 60, db, provider_timezone='UTC') == []


@pytest.mark.parametrize('duration', [0, -15, None])
def test_non_positive_duration_is_rejected(db, provider, add_window, duration) -> None:
    add_window(provider.id, 1, '09:00', '12:00')

    with pytest.raises(ValidationError):
        generate_slots(provider.id, MONDAY, duration, db, provider_timezone='UTC')


def test_slots_are_converted_from_provider_timezone(db, add_window) -> None:
    provider = Provider(email='ny@example.com', timezone='America/New_York')
    db.add(provider)
    db.commit()
    add_window(provider.id, 1, '09:00', '11:00')

    winter = generate_slots(provider.id, MONDAY, 60, db)
    # 2026-03-09 is the Monday after the DST switch.
    summer = generate_slots(provider.id, date(2026, 3, 9), 60, db)

    assert as_pairs(winter) == [(utc(14), utc(15)), (utc(15), utc(16))]
    assert [slot.start_time for slot in summer] == [
        pytz.UTC.localize(datetime(2026, 3, 9, 13, 0)),
        pytz.UTC.localize(datetime(2026, 3, 9, 14, 0)),
    ]


def test_unknown_timezone_falls_back_to_utc(db, provider, add_window) -> None:
    add_window(provider.id, 1, '09:00', '10:00')

    slots = generate_slots(provider.id, MONDAY, 60, db, provider_timezone='Nowhere/Special')

    assert as_pairs(slots) == [(utc(9), utc(10))]


def test_appointments_from_the_previous_local_day_are_considered(db, add_window, add_appointment) -> None:
    provider = Provider(email='tokyo@example.com', timezone='Asia/Tokyo')
    db.add(provider)
    db.commit()
    add_window(provider.id, 1, '09:00', '11:00')
    # Monday 09:00 Tokyo is Monday 00:00 UTC; this appointment starts on Sunday in UTC.
    add_appointment(provider.id, naive(23, 30, day=4), naive(0, 30))

    slots = generate_slots(provider.id, MONDAY, 60, db)

    assert as_pairs(slots) == [(utc(1), utc(2))]


def test_generated_slots_never_overlap_exclusions(db, provider, add_window, add_block, add_appointment) -> None:
    add_window(provider.id, 1, '08:00', '12:00')
    add_window(provider.id, 1, '13:00', '18:00')
    blocks = [add_block(provider.id, naive(9, 10), naive(9, 50)), add_block(provider.id, naive(15), naive(16))]
    appointments = [
        add_appointment(provider.id, naive(11, 15), naive(11, 45)),
        add_appointment(provider.id, naive(13), naive(14)),
    ]

    slots = generate_slots(provider.id, MONDAY, 30, db, provider_timezone='UTC')

    assert slots
    for slot in slots:
        start, end = to_utc_naive(slot.start_time), to_utc_naive(slot.end_time)
        assert not any(overlaps(start, end, b.start_at, b.end_at) for b in blocks)
        assert not any(overlaps(start, end, a.start_at, a.end_at) for a in appointments)
        local_start = start.hour * 60 + start.minute
        local_end = end.hour * 60 + end.minute
        assert (480 <= local_start and local_end <= 720) or (780 <= local_start and local_end <= 1080)

    for first, second in zip(slots, slots[1:]):
        assert first.end_time <= second.start_time


def test_generate_slots_is_repeatable(db, provider, add_window, add_appointment) -> None:
    add_window(provider.id, 1, '09:00', '12:00')
    add_appointment(provider.id, naive(10), naive(11))

    first = generate_slots(provider.id, MONDAY, 30, db, provider_timezone='UTC')
    second = generate_slots(provider.id, MONDAY, 30, db, provider_timezone='UTC')

    assert as_pairs(first) == as_pairs(second)
