from datetime import date, datetime, timezone

from flightlog.errors import OperationError
from flightlog.validation import (
    NormalizedLeg, RawFlight, RawLeg, SeatInput, assemble_flight, assemble_imported_flight,
)
from flightlog.validation.flight import NOT_OWNER_MESSAGE


def raw_leg(airports, origin, dest, day, dep, arr):
    return RawLeg(
        from_airport=airports[origin],
        to_airport=airports[dest],
        departure=day,
        departure_time=dep,
        arrival=day,
        arrival_time=arr,
        seats=[SeatInput(user_id='u-alice')],
    )


def test_multi_leg_flight(airports):
    raw = RawFlight(
        legs=[
            raw_leg(airports, 'LHR', 'CDG', '2024-06-01', '08:00', '10:15'),
            raw_leg(airports, 'CDG', 'JFK', '2024-06-01', '13:00', '15:30'),
        ],
        flight_reason='leisure',
        note='Via Paris',
    )

    result = assemble_flight(raw, acting_user_id='u-alice')

    assert result.ok
    flight = result.value
    assert flight.date == date(2024, 6, 1)
    assert [leg.order for leg in flight.legs] == [0, 1]
    assert flight.legs[0].duration == 75 * 60
    assert flight.flight_reason == 'leisure'
    assert flight.note == 'Via Paris'


def test_flight_without_legs():
    result = assemble_flight(RawFlight(legs=[]))
    assert result.error.path == 'legs'
    assert result.error.message == 'Add at least one leg'


def test_first_failing_leg_is_reported(airports):
    bad = raw_leg(airports, 'CDG', 'JFK', '2024-06-01', '13:00', '15:30')
    bad.to_airport = None
    raw = RawFlight(legs=[raw_leg(airports, 'LHR', 'CDG', '2024-06-01', '08:00', '10:15'), bad])

    result = assemble_flight(raw)
    assert result.error.path == 'legs[1].to'


def test_flight_date_uses_scheduled_when_no_actual(airports):
    leg = RawLeg(
        from_airport=airports['JFK'],
        to_airport=airports['LAX'],
        departure_scheduled='2024-02-29',
        seats=[SeatInput(user_id='u-alice')],
    )
    result = assemble_flight(RawFlight(legs=[leg]))
    assert result.value.date == date(2024, 2, 29)


def test_edit_of_missing_flight_is_refused(airports):
    raw = RawFlight(legs=[raw_leg(airports, 'LHR', 'CDG', '2024-06-01', '08:00', '10:15')], id=99)

    result = assemble_flight(raw, acting_user_id='u-alice', existing=None)

    assert isinstance(result.error, OperationError)
    assert result.error.status == 403
    assert result.error.message == NOT_OWNER_MESSAGE


def test_imported_flight_gets_order_duration_and_date(airports):
    legs = [
        NormalizedLeg(
            from_airport=airports['JFK'],
            to_airport=airports['LAX'],
            order=5,
            # 22:00 on the 1st in New York
            departure=datetime(2024, 5, 2, 2, 0, tzinfo=timezone.utc),
            arrival=datetime(2024, 5, 2, 8, 0, tzinfo=timezone.utc),
        ),
        NormalizedLeg(from_airport=airports['LAX'], to_airport=airports['JFK'], order=9, duration=1234),
    ]

    flight = assemble_imported_flight(legs)

    assert flight.date == date(2024, 5, 1)
    assert [leg.order for leg in flight.legs] == [0, 1]
    assert flight.legs[0].duration == 6 * 3600
    assert flight.legs[1].duration == 1234


def test_imported_flight_without_any_date(airports):
    legs = [NormalizedLeg(from_airport=airports['JFK'], to_airport=airports['LAX'])]
    assert assemble_imported_flight(legs) is None
