import copy
import json
from datetime import date, datetime, timezone

import pytest

from flightlog.errors import ImportFormatError
from flightlog.importing import ImportOptions, ImportPipeline, parse_airtrail_export

EXPORT = {
    'version': 2,
    'users': [
        {'id': 'x1', 'username': 'alice', 'displayName': 'Alice'},
        {'id': 'x2', 'username': 'zed', 'displayName': 'Zed'},
    ],
    'flights': [
        {
            'date': '2024-05-01',
            'flightReason': 'leisure',
            'note': None,
            'legs': [
                {
                    'from': {'icao': 'KJFK', 'iata': 'JFK', 'name': 'JFK'},
                    'to': {'icao': 'KLAX', 'iata': 'LAX', 'name': 'LAX'},
                    'departure': '2024-05-01T14:00:00.000Z',
                    'arrival': '2024-05-01T20:30:00.000Z',
                    'duration': None,
                    'flightNumber': 'DL100',
                    'airline': {'icao': 'DLH', 'name': 'Lufthansa'},
                    'aircraft': {'icao': 'B738', 'name': 'Boeing 737-800'},
                    'seats': [
                        {'userId': 'x1', 'seat': 'window', 'seatClass': 'economy'},
                        {'userId': 'x2', 'seat': 'middle'},
                    ],
                },
            ],
        },
    ],
}


def export_text(mutate=None):
    data = copy.deepcopy(EXPORT)
    if mutate:
        mutate(data)
    return json.dumps(data)


def first_leg(data):
    return data['flights'][0]['legs'][0]


@pytest.fixture
def alice(lookup):
    return next(u for u in lookup.list_users() if u.username == 'alice')


@pytest.fixture
def pipeline(store, lookup):
    return ImportPipeline(store, lookup)


# -----------------------------------------------------------------------------
# Parsing
# -----------------------------------------------------------------------------

def test_parse_version_2():
    export = parse_airtrail_export(export_text())

    assert export.version == 2
    assert len(export.flights) == 1
    assert export.flights[0]['legs'][0]['from']['icao'] == 'KJFK'
    assert [u.username for u in export.users] == ['alice', 'zed']
    assert export.users[1].unknown_key == 'x2|zed|Zed'


def test_parse_version_1_becomes_single_leg():
    flat = {
        'users': [{'id': 'x1', 'username': 'alice', 'displayName': 'Alice'}],
        'flights': [{
            'date': '2023-09-10',
            'from': {'icao': 'EGLL'},
            'to': {'icao': 'LFPG'},
            'departure': '2023-09-10T07:00:00Z',
            'seats': [{'userId': 'x1'}],
        }],
    }

    export = parse_airtrail_export(json.dumps(flat))

    assert export.version == 1
    legs = export.flights[0]['legs']
    assert len(legs) == 1
    assert legs[0]['from']['icao'] == 'EGLL'
    assert legs[0]['departure'] == '2023-09-10T07:00:00Z'


@pytest.mark.parametrize('text', [
    'not json',
    '[]',
    json.dumps({'users': [{'id': 'x1', 'username': 'alice'}], 'flights': []}),
    json.dumps({'flights': EXPORT['flights'], 'users': []}),
])
def test_parse_rejects_malformed_files(text):
    with pytest.raises(ImportFormatError):
        parse_airtrail_export(text)


def test_parse_rejects_unknown_flight_reason():
    text = export_text(lambda d: d['flights'][0].update(flightReason='vacation'))
    with pytest.raises(ImportFormatError, match='flightReason'):
        parse_airtrail_export(text)


def test_parse_rejects_leg_without_seats():
    text = export_text(lambda d: first_leg(d).update(seats=[]))
    with pytest.raises(ImportFormatError, match='seats'):
        parse_airtrail_export(text)


# -----------------------------------------------------------------------------
# Pipeline
# -----------------------------------------------------------------------------

def test_import_resolves_references(pipeline, store, alice):
    result = pipeline.run(parse_airtrail_export(export_text()), ImportOptions(), alice)

    assert result.inserted_flights == 1
    assert result.skipped_flights == 0
    assert result.unknown_users == {'x2|zed|Zed': [0]}

    [flight] = store.find_user_flights(alice.id)
    leg = flight.legs[0]
    assert flight.date == date(2024, 5, 1)
    assert leg.airline.icao == 'DLH'
    assert leg.aircraft.icao == 'B738'
    assert leg.duration == 6 * 3600 + 30 * 60
    assert leg.departure == datetime(2024, 5, 1, 14, 0, tzinfo=timezone.utc)
    assert {(s.user_id, s.guest_name) for s in leg.seats} == {(alice.id, None), (None, 'Zed')}


def test_user_mapping(pipeline, store, alice):
    options = ImportOptions(user_mapping={'x2': 'u-bob'})

    result = pipeline.run(parse_airtrail_export(export_text()), options, alice)

    assert result.unknown_users == {}
    assert len(store.find_user_flights('u-bob')) == 1


def test_importer_gets_a_seat(pipeline, store, alice):
    text = export_text(lambda d: first_leg(d).update(seats=[{'userId': 'x2'}]))

    pipeline.run(parse_airtrail_export(text), ImportOptions(), alice)

    [flight] = store.find_user_flights(alice.id)
    assert {s.user_id for s in flight.legs[0].seats} == {alice.id, None}


def test_unknown_airport_skips_flight(pipeline, store, alice):
    text = export_text(lambda d: first_leg(d)['to'].update(icao='ZZZZ'))

    result = pipeline.run(parse_airtrail_export(text), ImportOptions(), alice)

    assert result.inserted_flights == 0
    assert result.skipped_flights == 1
    assert result.unknown_airports == {'ZZZZ': [0]}
    assert store.find_user_flights(alice.id) == []


def test_airport_mapping(pipeline, store, lookup, alice):
    text = export_text(lambda d: first_leg(d)['to'].update(icao='ZZZZ'))
    options = ImportOptions(airport_mapping={'ZZZZ': lookup.airport_by_icao('LFPG').id})

    result = pipeline.run(parse_airtrail_export(text), options, alice)

    assert result.inserted_flights == 1
    [flight] = store.find_user_flights(alice.id)
    assert flight.legs[0].to_airport.icao == 'LFPG'


def test_unknown_airline_is_reported(pipeline, store, alice):
    text = export_text(lambda d: first_leg(d)['airline'].update(icao='XXX'))

    result = pipeline.run(parse_airtrail_export(text), ImportOptions(), alice)

    assert result.inserted_flights == 1
    assert result.unknown_airlines == {'XXX': [0]}
    [flight] = store.find_user_flights(alice.id)
    assert flight.legs[0].airline is None


def test_unreadable_instant_is_dropped(pipeline, store, alice):
    text = export_text(lambda d: first_leg(d).update(arrival='sometime'))

    result = pipeline.run(parse_airtrail_export(text), ImportOptions(), alice)

    assert result.inserted_flights == 1
    [flight] = store.find_user_flights(alice.id)
    assert flight.legs[0].arrival is None
    # Estimated from distance instead
    assert flight.legs[0].duration > 0


def test_reimport_adds_nothing(pipeline, store, alice):
    export = parse_airtrail_export(export_text())
    pipeline.run(export, ImportOptions(), alice)

    result = pipeline.run(parse_airtrail_export(export_text()), ImportOptions(), alice)

    assert (result.inserted_flights, result.attached_seats) == (0, 0)
    assert len(store.find_user_flights(alice.id)) == 1


def test_options_from_request_body():
    options = ImportOptions.from_dict({
        'dedupe': False,
        'airportMapping': {'zzzz': '3'},
        'userMapping': {'x2': 'u-bob'},
    })

    assert options.dedupe is False
    assert options.airport_mapping == {'ZZZZ': 3}
    assert options.airline_mapping == {}
    assert options.user_mapping == {'x2': 'u-bob'}
