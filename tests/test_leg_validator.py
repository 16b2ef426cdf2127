from datetime import datetime, timezone

import pytest

from flightlog.errors import PathError
from flightlog.geo import distance_between, estimate_duration
from flightlog.validation import RawLeg, SeatInput, validate_leg


def make_leg(airports, **overrides):
    fields = dict(
        from_airport=airports['JFK'],
        to_airport=airports['LAX'],
        departure='2024-05-01',
        departure_time='10:00',
        arrival='2024-05-01',
        arrival_time='13:30',
        seats=[SeatInput(user_id='u-alice', seat='window', seat_class='economy')],
    )
    fields.update(overrides)
    return RawLeg(**fields)


def assert_error(result, path, message):
    assert not result.ok
    assert isinstance(result.error, PathError)
    assert result.error.path == path
    assert result.error.message == message


def test_valid_leg_is_normalized_to_utc(airports):
    result = validate_leg(make_leg(airports), 0)

    assert result.ok
    leg = result.value
    assert leg.departure == datetime(2024, 5, 1, 14, 0, tzinfo=timezone.utc)
    assert leg.arrival == datetime(2024, 5, 1, 20, 30, tzinfo=timezone.utc)
    assert leg.duration == 6 * 3600 + 30 * 60
    assert leg.seats[0].user_id == 'u-alice'


def test_duration_spans_zones(airports):
    # 1 May (daylight time): 10:00 in New York is 14:00Z, 08:00 in Los Angeles is 15:00Z
    result = validate_leg(make_leg(airports, arrival_time='08:00'), 0)
    assert result.ok
    assert result.value.duration == 3600


def test_missing_departure_airport(airports):
    assert_error(validate_leg(make_leg(airports, from_airport=None), 0), 'legs[0].from', 'Select a departure airport')


def test_missing_arrival_airport(airports):
    assert_error(validate_leg(make_leg(airports, to_airport=None), 2), 'legs[2].to', 'Select an arrival airport')


def test_missing_departure_date(airports):
    result = validate_leg(make_leg(airports, departure=None, departure_time=None), 0)
    assert_error(result, 'legs[0].departure', 'Select a departure date')


def test_invalid_departure_date(airports):
    assert_error(validate_leg(make_leg(airports, departure='2024-13-01'), 0), 'legs[0].departure', 'Invalid date')


def test_departure_before_epoch(airports):
    result = validate_leg(make_leg(airports, departure='1969-12-31', arrival=None, arrival_time=None), 0)
    assert_error(result, 'legs[0].departure', 'Too far in the past')


def test_invalid_departure_time(airports):
    result = validate_leg(make_leg(airports, departure_time='25:61'), 1)
    assert_error(result, 'legs[1].departureTime', 'Invalid time format')


def test_nonexistent_local_time(airports):
    result = validate_leg(make_leg(airports, departure='2024-03-10', departure_time='02:30',
                                   arrival='2024-03-10'), 0)
    assert_error(result, 'legs[0].departureTime', 'Invalid time format')


def test_arrival_date_without_time(airports):
    result = validate_leg(make_leg(airports, arrival_time=None), 0)
    assert_error(result, 'legs[0].arrival', 'Cannot have arrival date without time')


def test_arrival_before_departure(airports):
    result = validate_leg(make_leg(airports, arrival_time='06:00'), 0)
    assert_error(result, 'legs[0].arrival', 'Arrival must be after departure')


def test_arrival_time_without_date_uses_departure_date(airports):
    result = validate_leg(make_leg(airports, arrival=None), 0)
    assert result.ok
    assert result.value.arrival == datetime(2024, 5, 1, 20, 30, tzinfo=timezone.utc)


def test_date_only_leg_estimates_duration(airports):
    result = validate_leg(make_leg(airports, departure_time=None, arrival=None, arrival_time=None), 0)

    assert result.ok
    leg = result.value
    assert leg.departure is None
    assert leg.arrival is None
    assert leg.duration == estimate_duration(distance_between(airports['JFK'], airports['LAX']))


def test_same_airport_without_times_has_no_duration(airports):
    result = validate_leg(make_leg(airports, to_airport=airports['JFK'], departure_time=None,
                                   arrival=None, arrival_time=None), 0)
    assert result.ok
    assert result.value.duration is None


def test_scheduled_departure_is_enough(airports):
    result = validate_leg(make_leg(
        airports,
        departure=None,
        departure_time=None,
        arrival=None,
        arrival_time=None,
        departure_scheduled='2024-05-01',
        departure_scheduled_time='09:45',
        arrival_scheduled='2024-05-01',
        arrival_scheduled_time='13:00',
    ), 0)

    assert result.ok
    leg = result.value
    assert leg.departure is None
    assert leg.departure_scheduled == datetime(2024, 5, 1, 13, 45, tzinfo=timezone.utc)
    assert leg.arrival_scheduled == datetime(2024, 5, 1, 20, 0, tzinfo=timezone.utc)


def test_landing_uses_destination_zone(airports):
    result = validate_leg(make_leg(airports, landing_actual='2024-05-01', landing_actual_time='13:20'), 0)
    assert result.ok
    assert result.value.landing_actual == datetime(2024, 5, 1, 20, 20, tzinfo=timezone.utc)


def test_invalid_scheduled_time_path(airports):
    result = validate_leg(make_leg(airports, takeoff_scheduled='2024-05-01', takeoff_scheduled_time='9am'), 0)
    assert_error(result, 'legs[0].takeoffScheduledTime', 'Invalid time format')


@pytest.mark.parametrize('seats, message', [
    ([], 'Add at least one seat'),
    ([SeatInput(seat='aisle')], 'Select a user or add a guest name'),
    ([SeatInput(guest_name='Carol')], 'At least one seat must be assigned to a user'),
    ([SeatInput(user_id='u-alice'), SeatInput(user_id='u-alice')],
     'The same traveller cannot have two seats on one leg'),
])
def test_seat_rules(airports, seats, message):
    assert_error(validate_leg(make_leg(airports, seats=seats), 0), 'legs[0].seats', message)


def test_guest_seat_alongside_user(airports):
    seats = [SeatInput(user_id='u-alice'), SeatInput(guest_name='Carol', seat_number='12A')]
    result = validate_leg(make_leg(airports, seats=seats), 0)
    assert result.ok
    assert [s.guest_name for s in result.value.seats] == [None, 'Carol']
