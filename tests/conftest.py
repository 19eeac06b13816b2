from collections.abc import Callable, Generator
from datetime import date

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from garage_insights.core.settings import Settings
from garage_insights.db.models import Customer, ServiceLog, Vehicle
from garage_insights.db.session import Base


@pytest.fixture
def db_engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(db_engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine, class_=Session)


@pytest.fixture
def db_session(session_factory: sessionmaker[Session]) -> Generator[Session, None, None]:
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def make_customer(db_session: Session) -> Callable[..., Customer]:
    def _make(name: str = "Dana Reyes", email: str | None = "dana@example.com") -> Customer:
        customer = Customer(name=name, email=email, phone="555-0100")
        db_session.add(customer)
        db_session.commit()
        return customer

    return _make


@pytest.fixture
def make_vehicle(db_session: Session, make_customer: Callable[..., Customer]) -> Callable[..., Vehicle]:
    def _make(
        make: str = "Honda",
        model: str = "Accord",
        year: int | None = None,
        mileage: int | None = 50000,
        customer: Customer | None = None,
    ) -> Vehicle:
        owner = customer or make_customer()
        vehicle = Vehicle(customer_id=owner.id, make=make, model=model, year=year, mileage=mileage)
        db_session.add(vehicle)
        db_session.commit()
        return vehicle

    return _make


@pytest.fixture
def make_service_log(db_session: Session) -> Callable[..., ServiceLog]:
    def _make(
        vehicle: Vehicle,
        service_type: str = "Oil Change",
        service_date: date = date(2024, 1, 15),
        mileage_at_service: int | None = 40000,
    ) -> ServiceLog:
        log = ServiceLog(
            vehicle_id=vehicle.id,
            service_type=service_type,
            service_date=service_date,
            mileage_at_service=mileage_at_service,
        )
        db_session.add(log)
        db_session.commit()
        return log

    return _make


@pytest.fixture
def settings() -> Settings:
    return Settings(
        database_url="sqlite://",
        openai_api_key=None,
        openai_model="test-model",
        agent_max_tokens=1024,
        agent_max_iterations=5,
        agent_schedule_hour=6,
        agent_schedule_minute=30,
        agent_scheduler_enabled=True,
        insight_suppression_days=7,
    )
