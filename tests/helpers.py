"""Builders for normalized flights used across the tests."""

from datetime import date, datetime, timezone

from flightlog.validation import NormalizedFlight, NormalizedLeg, SeatInput


def normalized_flight(
    airports,
    origin='JFK',
    dest='LAX',
    day=date(2024, 5, 1),
    departure=datetime(2024, 5, 1, 14, 0, tzinfo=timezone.utc),
    arrival=datetime(2024, 5, 1, 20, 30, tzinfo=timezone.utc),
    flight_number='DL100',
    seats=None,
    extra_legs=(),
):
    first = NormalizedLeg(
        from_airport=airports[origin],
        to_airport=airports[dest],
        departure=departure,
        arrival=arrival,
        duration=int((arrival - departure).total_seconds()) if departure and arrival else None,
        flight_number=flight_number,
        seats=list(seats) if seats is not None else [SeatInput(user_id='u-alice', seat='window')],
    )
    legs = [first]
    for origin_code, dest_code in extra_legs:
        legs.append(NormalizedLeg(
            from_airport=airports[origin_code],
            to_airport=airports[dest_code],
            seats=[SeatInput(user_id='u-alice')],
        ))
    for index, leg in enumerate(legs):
        leg.order = index
    return NormalizedFlight(date=day, legs=legs, flight_reason='leisure')
