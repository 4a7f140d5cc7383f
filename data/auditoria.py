"""
Registro de atividades dos usuários.

Buffer circular persistido na tabela chave/valor: o registro mais novo
fica no início e os mais antigos são descartados acima do limite.
Gravar uma atividade nunca interrompe a operação que a originou.
"""

from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError

from core.modelos import agora_ms
from data.config import CONFIGURACOES
from data.logging_config import get_logger

logger = get_logger(__name__)

CHAVE_ATIVIDADES = CONFIGURACOES['armazenamento']['atividades']


class AcaoAuditada:
    """Tipos de ação registrados"""
    LOGIN = 'LOGIN'
    LOGOUT = 'LOGOUT'
    CREATE = 'CREATE'
    UPDATE = 'UPDATE'
    DELETE = 'DELETE'
    NAVIGATION = 'NAVIGATION'


@dataclass(frozen=True)
class Atividade:
    id: int
    timestamp: int
    user: str
    action: str
    details: str

    @classmethod
    def de_dict(cls, dados):
        return cls(
            id=int(dados['id']),
            timestamp=int(dados['timestamp']),
            user=str(dados.get('user', '')),
            action=str(dados.get('action', '')),
            details=str(dados.get('details', '')),
        )

    def para_dict(self):
        return {
            'id': self.id,
            'timestamp': self.timestamp,
            'user': self.user,
            'action': self.action,
            'details': self.details,
        }


class RegistroAtividades:
    def __init__(self, armazenamento, limite=None, relogio=agora_ms):
        self.armazenamento = armazenamento
        self.limite = limite or CONFIGURACOES['auditoria']['max_registros']
        self.relogio = relogio

    def listar(self):
        atividades = []
        for registro in self.armazenamento.ler(CHAVE_ATIVIDADES, []):
            try:
                atividades.append(Atividade.de_dict(registro))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Registro de atividade ignorado: {e}")
        return atividades

    def registrar(self, usuario, acao, detalhes):
        """Acrescenta a atividade; falhas de gravação são apenas logadas"""
        atividades = self.listar()
        agora = self.relogio()
        # id crescente mesmo com dois registros no mesmo milissegundo
        novo_id = max(agora, atividades[0].id + 1) if atividades else agora
        atividade = Atividade(novo_id, agora, usuario, acao, detalhes)
        atualizadas = [atividade] + atividades
        try:
            self.armazenamento.gravar(
                CHAVE_ATIVIDADES, [a.para_dict() for a in atualizadas[:self.limite]])
        except SQLAlchemyError as e:
            logger.error(f"Falha ao registrar atividade {acao} de {usuario}: {e}")
            return None
        logger.debug(f"[{acao}] {usuario}: {detalhes}")
        return atividade

    def filtrar(self, usuario=None, acao=None):
        return [a for a in self.listar()
                if (usuario is None or a.user == usuario)
                and (acao is None or a.action == acao)]
