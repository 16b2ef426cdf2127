from flightlog.reference import load_airports_csv


def test_airport_lookup_is_case_insensitive(lookup):
    airport = lookup.airport_by_icao(' kjfk ')
    assert airport.iata == 'JFK'
    assert airport.tz == 'America/New_York'
    assert lookup.airport_by_id(airport.id) == airport


def test_missing_codes(lookup):
    assert lookup.airport_by_icao('ZZZZ') is None
    assert lookup.airport_by_icao(None) is None
    assert lookup.airline_by_icao('XXX') is None


def test_airline_and_aircraft_lookups(lookup):
    assert lookup.airline_by_icao('dlh').name == 'Lufthansa'
    assert lookup.airline_by_name('air france').icao == 'AFR'
    assert lookup.aircraft_by_icao('B738').name == 'Boeing 737-800'
    assert lookup.aircraft_by_name('boeing 737-800').icao == 'B738'


def test_list_users(lookup):
    assert [u.username for u in lookup.list_users()] == ['alice', 'bob']


def test_load_airports_csv(tmp_path, session_factory, lookup):
    csv_path = tmp_path / 'airports.csv'
    csv_path.write_text(
        'icao,iata,name,lat,lon,tz\n'
        'rjtt,hnd,Tokyo Haneda,35.5523,139.7798,Asia/Tokyo\n'
        'XXXX,,No zone,1.0,1.0,\n'
        'YYYY,,Bad coords,north,1.0,UTC\n',
        encoding='utf-8',
    )

    assert lookup.airport_by_icao('RJTT') is None
    assert load_airports_csv(csv_path, session_factory) == 1
    # The miss above is cached until cleared
    assert lookup.airport_by_icao('RJTT') is None
    lookup.clear_cache()

    haneda = lookup.airport_by_icao('RJTT')
    assert haneda.iata == 'HND'
    assert haneda.tz == 'Asia/Tokyo'


def test_load_airports_missing_file(tmp_path, session_factory):
    assert load_airports_csv(tmp_path / 'missing.csv', session_factory) == 0
