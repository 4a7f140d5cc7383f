from sqlalchemy import create_engine, MetaData, Table, Column, String, Text
from sqlalchemy.exc import NoSuchTableError
from sqlalchemy.pool import StaticPool

from data.config import DB_FILE

META = MetaData()

ARMAZENAMENTO = Table('armazenamento', META,
    Column('chave', String, primary_key=True),
    Column('valor', Text, nullable=False)
)


def criar_engine(caminho=DB_FILE):
    """Engine SQLite; use ':memory:' para um banco descartável"""
    if caminho == ':memory:':
        return create_engine('sqlite://', connect_args={"check_same_thread": False},
                             poolclass=StaticPool)
    return create_engine(f'sqlite:///{caminho}', connect_args={"check_same_thread": False})


def criar_tabela_if_not_exists(engine):
    try:
        Table('armazenamento', MetaData(), autoload_with=engine)
    except NoSuchTableError:
        META.create_all(engine)
