import json
import re
from dataclasses import dataclass
from typing import NamedTuple, Optional, Sequence

from sqlalchemy import select, insert, update, delete
from sqlalchemy.exc import SQLAlchemyError

from core.modelos import Fleet, Visit, agora_ms, normalizar_tipos_ordem, safe_texto, safe_timestamp
from core.transicoes import ErroValidacao, aplicar_transicao, descrever_transicao
from data.auditoria import AcaoAuditada, RegistroAtividades
from data.config import CONFIGURACOES, DB_FILE, EM_FILA
from data.db import ARMAZENAMENTO, criar_engine, criar_tabela_if_not_exists
from data.logging_config import get_logger

logger = get_logger(__name__)

CHAVES = CONFIGURACOES['armazenamento']
_ID_VISITA = re.compile(r'^V(\d+)$')


class ArmazenamentoChaveValor:
    """Tabela chave/valor no SQLite; valores gravados como JSON."""

    def __init__(self, engine):
        self.engine = engine
        criar_tabela_if_not_exists(engine)

    def ler(self, chave, padrao=None):
        try:
            with self.engine.connect() as conn:
                linha = conn.execute(
                    select(ARMAZENAMENTO.c.valor).where(ARMAZENAMENTO.c.chave == chave)
                ).first()
        except SQLAlchemyError as e:
            logger.error(f"Erro ao carregar '{chave}': {e}")
            return padrao
        if linha is None:
            return padrao
        try:
            return json.loads(linha.valor)
        except json.JSONDecodeError as e:
            logger.error(f"Valor corrompido em '{chave}': {e}")
            return padrao

    def gravar(self, chave, valor):
        texto = json.dumps(valor, ensure_ascii=False)
        try:
            with self.engine.begin() as conn:
                resultado = conn.execute(
                    update(ARMAZENAMENTO).where(ARMAZENAMENTO.c.chave == chave).values(valor=texto)
                )
                if resultado.rowcount == 0:
                    conn.execute(insert(ARMAZENAMENTO).values(chave=chave, valor=texto))
        except SQLAlchemyError as e:
            logger.error(f"Erro ao salvar '{chave}': {e}")
            raise

    def existe(self, chave):
        with self.engine.connect() as conn:
            return conn.execute(
                select(ARMAZENAMENTO.c.chave).where(ARMAZENAMENTO.c.chave == chave)
            ).first() is not None

    def remover(self, chave):
        with self.engine.begin() as conn:
            conn.execute(delete(ARMAZENAMENTO).where(ARMAZENAMENTO.c.chave == chave))


class RepositorioVisitas:
    def __init__(self, armazenamento: ArmazenamentoChaveValor):
        self.armazenamento = armazenamento

    def listar(self):
        """Visitas da chegada mais recente para a mais antiga"""
        visitas = []
        for registro in self.armazenamento.ler(CHAVES['visitas'], []):
            try:
                visitas.append(Visit.de_dict(registro))
            except (KeyError, TypeError, ValueError) as e:
                visita_id = registro.get('id', '?') if isinstance(registro, dict) else '?'
                logger.warning(f"Visita ignorada ({visita_id}): {e}")
        return sorted(visitas, key=lambda v: v.arrival_timestamp, reverse=True)

    def salvar_todas(self, visitas):
        self.armazenamento.gravar(CHAVES['visitas'], [v.para_dict() for v in visitas])

    def obter(self, visita_id):
        return next((v for v in self.listar() if v.id == visita_id), None)

    def por_frota(self, frota_id):
        return [v for v in self.listar() if v.fleet_id == frota_id]

    @staticmethod
    def proximo_id(visitas):
        """V + sequência de 3 dígitos: maior sufixo numérico existente + 1"""
        numeros = [int(m.group(1)) for m in (_ID_VISITA.match(v.id) for v in visitas) if m]
        return f"V{max(numeros, default=0) + 1:03d}"

    def adicionar(self, visita):
        self.salvar_todas([visita] + self.listar())

    def atualizar(self, visita):
        visitas = self.listar()
        for i, existente in enumerate(visitas):
            if existente.id == visita.id:
                visitas[i] = visita
                self.salvar_todas(visitas)
                return True
        return False

    def excluir(self, visita_id):
        visitas = self.listar()
        restantes = [v for v in visitas if v.id != visita_id]
        if len(restantes) == len(visitas):
            return False
        self.salvar_todas(restantes)
        return True


class RepositorioFrotas:
    def __init__(self, armazenamento: ArmazenamentoChaveValor):
        self.armazenamento = armazenamento

    def listar(self):
        frotas = []
        for registro in self.armazenamento.ler(CHAVES['frotas'], []):
            try:
                frotas.append(Fleet.de_dict(registro))
            except (KeyError, TypeError) as e:
                logger.warning(f"Frota ignorada: {e}")
        return sorted(frotas, key=lambda f: f.id)

    def salvar_todas(self, frotas):
        self.armazenamento.gravar(CHAVES['frotas'], [f.para_dict() for f in frotas])

    def obter(self, frota_id):
        return next((f for f in self.listar() if f.id == frota_id), None)

    def adicionar(self, frota):
        frotas = self.listar()
        if any(f.id == frota.id for f in frotas):
            return False
        self.salvar_todas([frota] + frotas)
        return True

    def excluir(self, frota_id):
        frotas = self.listar()
        restantes = [f for f in frotas if f.id != frota_id]
        if len(restantes) == len(frotas):
            return False
        self.salvar_todas(restantes)
        return True


class ResultadoExclusao(NamedTuple):
    success: bool
    has_visits: bool = False


@dataclass
class DadosNovaVisita:
    """Dados do formulário de entrada de visita"""
    fleet_id: str
    plate: str
    carrier: str
    order_type: Sequence[str]
    workshop: str
    arrival_timestamp: object
    notes: Optional[str] = None
    image_url: Optional[str] = None


class GerenciadorDados:
    """
    Operações sobre visitas e frotas usadas pelas telas.

    Aplica as transições, persiste o resultado e registra a atividade
    depois de cada mutação bem-sucedida.
    """

    def __init__(self, armazenamento: ArmazenamentoChaveValor, atividades=None, relogio=agora_ms):
        self.armazenamento = armazenamento
        self.visitas = RepositorioVisitas(armazenamento)
        self.frotas = RepositorioFrotas(armazenamento)
        self.atividades = atividades or RegistroAtividades(armazenamento, relogio=relogio)
        self.relogio = relogio

    @classmethod
    def padrao(cls, caminho=DB_FILE):
        return cls(ArmazenamentoChaveValor(criar_engine(caminho)))

    def carregar_visitas(self):
        return self.visitas.listar()

    def carregar_frotas(self):
        return self.frotas.listar()

    def registrar_visita(self, dados: DadosNovaVisita, usuario):
        """Cria a visita em 'Em Fila'; a frota é cadastrada se ainda não existir"""
        fleet_id = (safe_texto(dados.fleet_id) or '').upper()
        tipos = normalizar_tipos_ordem(dados.order_type)
        chegada = safe_timestamp(dados.arrival_timestamp)
        erros = []
        if not fleet_id:
            erros.append("A frota é obrigatória.")
        if not tipos:
            erros.append("Você deve selecionar pelo menos um tipo de ordem.")
        if chegada is None:
            erros.append("A data de chegada é obrigatória.")
        if erros:
            raise ErroValidacao(" ".join(erros))

        plate = (safe_texto(dados.plate) or '').upper()
        frota = self.frotas.obter(fleet_id)
        if frota is None:
            frota = Fleet(
                id=fleet_id,
                plate=plate,
                equipment_type=CONFIGURACOES['equipamento_padrao'],
                carrier=(safe_texto(dados.carrier) or '').upper(),
            )
            self.frotas.adicionar(frota)
            logger.info(f"Frota {fleet_id} cadastrada automaticamente")

        agora = self.relogio()
        visitas = self.visitas.listar()
        visita = Visit(
            id=RepositorioVisitas.proximo_id(visitas),
            fleet_id=fleet_id,
            plate=plate,
            equipment_type=frota.equipment_type or CONFIGURACOES['equipamento_padrao'],
            order_type=tipos,
            status=EM_FILA,
            arrival_timestamp=chegada,
            workshop=safe_texto(dados.workshop),
            notes=safe_texto(dados.notes),
            image_url=dados.image_url,
            created_by=usuario,
            created_at=agora,
        )
        self.visitas.salvar_todas([visita] + visitas)
        self.atividades.registrar(usuario, AcaoAuditada.CREATE, f"Criou a visita para a frota {fleet_id}")
        logger.info(f"Visita {visita.id} criada por {usuario}")
        return visita

    def alterar_status(self, visita_id, novo_status, valores, usuario):
        """
        Aplica a transição pedida e persiste a nova visita.

        Retorna None se a visita não existir. ErroValidacao é propagado
        sem alterar nada.
        """
        visita = self.visitas.obter(visita_id)
        if visita is None:
            logger.warning(f"Visita {visita_id} não encontrada")
            return None

        agora = self.relogio()
        nova = aplicar_transicao(visita, novo_status, valores, agora)
        nova = nova.alterar(updated_by=usuario, updated_at=agora)
        self.visitas.atualizar(nova)
        self.atividades.registrar(usuario, AcaoAuditada.UPDATE, descrever_transicao(visita, nova))
        logger.info(f"Visita {visita_id}: {visita.status} -> {nova.status} ({usuario})")
        return nova

    def excluir_visita(self, visita_id, usuario):
        visita = self.visitas.obter(visita_id)
        if visita is None or not self.visitas.excluir(visita_id):
            logger.warning(f"Exclusão ignorada: visita {visita_id} não encontrada")
            return False
        self.atividades.registrar(
            usuario, AcaoAuditada.DELETE, f"Excluiu a visita {visita_id} da frota {visita.fleet_id}.")
        return True

    def excluir_frota(self, frota_id, usuario):
        """Recusa a exclusão se alguma visita referenciar a frota"""
        if self.visitas.por_frota(frota_id):
            return ResultadoExclusao(success=False, has_visits=True)
        if not self.frotas.excluir(frota_id):
            return ResultadoExclusao(success=False, has_visits=False)
        self.atividades.registrar(usuario, AcaoAuditada.DELETE, f"Excluiu a frota {frota_id}.")
        return ResultadoExclusao(success=True)

    def historico_frota(self, frota_id):
        return self.visitas.por_frota(frota_id)

    def resumo_frotas(self):
        """Total de visitas e última chegada de cada frota"""
        visitas = self.visitas.listar()
        resumo = {}
        for frota in self.frotas.listar():
            da_frota = [v for v in visitas if v.fleet_id == frota.id]
            resumo[frota.id] = {
                'total_visitas': len(da_frota),
                'ultima_chegada': da_frota[0].arrival_timestamp if da_frota else None,
            }
        return resumo
