"""Database configuration and initialization."""
from sqlalchemy import create_engine, BigInteger, Integer
from sqlalchemy.orm import scoped_session, sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

# Create SQLAlchemy base
Base = declarative_base()

# SQLite only autoincrements INTEGER primary keys
BigIntegerPK = BigInteger().with_variant(Integer, 'sqlite')

# Global session and engine
engine = None
db_session = None


def _engine_options(app):
    """Pool options per backend (SQLite in-memory needs a single shared connection)."""
    database_uri = app.config['SQLALCHEMY_DATABASE_URI']
    options = {'echo': app.config.get('SQLALCHEMY_ECHO', False)}

    if database_uri.startswith('sqlite'):
        options['connect_args'] = {'check_same_thread': False}
        if database_uri in ('sqlite://', 'sqlite:///:memory:'):
            options['poolclass'] = StaticPool
        return options

    options.update(
        pool_pre_ping=True,  # Enable connection health checks
        pool_size=10,
        max_overflow=20
    )
    return options


def init_db(app):
    """Initialize database connection."""
    global engine, db_session

    engine = create_engine(app.config['SQLALCHEMY_DATABASE_URI'], **_engine_options(app))

    db_session = scoped_session(
        sessionmaker(autocommit=False, autoflush=False, bind=engine)
    )

    # Register teardown
    @app.teardown_appcontext
    def shutdown_session(exception=None):
        """Close database session and rollback on error."""
        if exception:
            db_session.rollback()
        db_session.remove()


def create_all():
    """Create every table known to the models package."""
    import qms.models  # noqa: F401  (registers mappers on Base.metadata)
    Base.metadata.create_all(bind=engine)


def drop_all():
    """Drop every table (tests and `flask init-db --drop`)."""
    import qms.models  # noqa: F401
    Base.metadata.drop_all(bind=engine)


def get_session():
    """Get database session."""
    return db_session


LIKE_ESCAPE = '\\'


def contains_pattern(text: str) -> str:
    """LIKE pattern matching `text` anywhere, with % and _ taken literally."""
    escaped = text.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2).replace('%', r'\%').replace('_', r'\_')
    return f'%{escaped}%'
