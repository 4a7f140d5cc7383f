import pytest

from core.modelos import Visit
from data.auditoria import RegistroAtividades
from data.config import EM_FILA
from data.db import criar_engine
from data.manager import ArmazenamentoChaveValor, GerenciadorDados
from data.usuarios import GerenciadorUsuarios

AGORA = 1_700_000_000_000


class RelogioFixo:
    """Relógio controlado pelo teste (milissegundos)"""

    def __init__(self, valor=AGORA):
        self.valor = valor

    def __call__(self):
        return self.valor

    def avancar(self, ms):
        self.valor += ms


@pytest.fixture
def relogio():
    return RelogioFixo()


@pytest.fixture
def armazenamento():
    return ArmazenamentoChaveValor(criar_engine(':memory:'))


@pytest.fixture
def atividades(armazenamento, relogio):
    return RegistroAtividades(armazenamento, relogio=relogio)


@pytest.fixture
def gerenciador(armazenamento, atividades, relogio):
    return GerenciadorDados(armazenamento, atividades, relogio=relogio)


@pytest.fixture
def usuarios(armazenamento, atividades, relogio):
    gerenciador = GerenciadorUsuarios(armazenamento, atividades, relogio=relogio)
    gerenciador.inicializar()
    return gerenciador


@pytest.fixture
def nova_visita():
    def _nova(id='V001', order_type=('Corretiva',), status=EM_FILA, arrival=0, **extras):
        return Visit(
            id=id,
            fleet_id=extras.pop('fleet_id', 'F1'),
            plate=extras.pop('plate', 'ABC1D23'),
            equipment_type='Carreta',
            order_type=order_type,
            status=status,
            arrival_timestamp=arrival,
            **extras
        )
    return _nova
