"""Shared fixtures: an in-memory database seeded with reference data."""

import pytest
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from flightlog.app import create_app
from flightlog.models import Aircraft, Airline, Airport, User, init_db, make_engine
from flightlog.reference import ReferenceLookup
from flightlog.services import FlightService
from flightlog.store import FlightStore

AIRPORTS = [
    dict(icao='KJFK', iata='JFK', name='John F Kennedy International', lat=40.6398, lon=-73.7789,
         tz='America/New_York'),
    dict(icao='KLAX', iata='LAX', name='Los Angeles International', lat=33.9425, lon=-118.4081,
         tz='America/Los_Angeles'),
    dict(icao='LFPG', iata='CDG', name='Paris Charles de Gaulle', lat=49.0128, lon=2.5500,
         tz='Europe/Paris'),
    dict(icao='EGLL', iata='LHR', name='London Heathrow', lat=51.4706, lon=-0.4619,
         tz='Europe/London'),
]

USERS = [
    dict(id='u-alice', username='alice', display_name='Alice'),
    dict(id='u-bob', username='bob', display_name='Bob'),
]


@pytest.fixture
def session_factory():
    engine = make_engine('sqlite://', poolclass=StaticPool)
    init_db(bind=engine)
    factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

    with factory() as session:
        session.add_all(Airport(**a) for a in AIRPORTS)
        session.add_all(User(**u) for u in USERS)
        session.add(Airline(icao='DLH', iata='LH', name='Lufthansa'))
        session.add(Airline(icao='AFR', iata='AF', name='Air France'))
        session.add(Aircraft(icao='B738', name='Boeing 737-800'))
        session.commit()

    yield factory
    engine.dispose()


@pytest.fixture
def store(session_factory):
    return FlightStore(session_factory)


@pytest.fixture
def lookup(session_factory):
    return ReferenceLookup(session_factory)


@pytest.fixture
def service(store, lookup):
    return FlightService(store, lookup)


@pytest.fixture
def airports(lookup):
    """Airport infos keyed by IATA code."""
    return {a['iata']: lookup.airport_by_icao(a['icao']) for a in AIRPORTS}


@pytest.fixture
def app(store, lookup):
    app = create_app(store=store, lookup=lookup)
    app.config['TESTING'] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()
