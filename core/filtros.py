"""
core/filtros.py
Filtros e ordenação da lista de visitas.

As chaves derivadas (queueTime, maintenanceTime, partsTime, totalTime) são
calculadas na hora de montar a visão, nunca armazenadas.
"""

from dataclasses import dataclass
from typing import List, Optional

import numpy as np
import pandas as pd

from core.metricas import mesma_data
from core.modelos import CHAVES_VISITA, Visit
from data.config import EM_FILA, EM_MANUTENCAO, AGUARDANDO_PECA, FINALIZADO

TODOS = 'all'

CHAVES_DERIVADAS = ('queueTime', 'maintenanceTime', 'partsTime', 'totalTime')

# Campos escalares da visita que podem ser usados na ordenação
_ATRIBUTOS_ORDENAVEIS = (
    'id', 'fleet_id', 'plate', 'equipment_type', 'status', 'workshop',
    'arrival_timestamp', 'maintenance_start_timestamp', 'awaiting_part_timestamp',
    'finish_timestamp', 'box_number', 'box_entry_timestamp', 'service_performed',
    'part_used', 'part_quantity', 'notes', 'created_by', 'created_at',
    'updated_by', 'updated_at',
)
_NUMERICOS = {
    'arrival_timestamp', 'maintenance_start_timestamp', 'awaiting_part_timestamp',
    'finish_timestamp', 'box_entry_timestamp', 'part_quantity', 'created_at', 'updated_at',
}

CHAVES_ORDENAVEIS = tuple(CHAVES_VISITA[a] for a in _ATRIBUTOS_ORDENAVEIS) + CHAVES_DERIVADAS


@dataclass(frozen=True)
class FiltrosVisita:
    status: str = TODOS
    order_type: str = TODOS
    workshop: str = TODOS
    fleet_id: Optional[str] = None
    data: Optional[object] = None

    def aceita(self, visita: Visit) -> bool:
        if self.status != TODOS and visita.status != self.status:
            return False
        if self.order_type != TODOS and self.order_type not in visita.order_type:
            return False
        if self.workshop != TODOS and visita.workshop != self.workshop:
            return False
        if self.fleet_id and visita.fleet_id != self.fleet_id:
            return False
        if self.data is not None and not mesma_data(visita.arrival_timestamp, self.data):
            return False
        return True


@dataclass(frozen=True)
class Ordenacao:
    chave: str = 'arrivalTimestamp'
    direcao: str = 'desc'

    def __post_init__(self):
        if self.chave not in CHAVES_ORDENAVEIS:
            raise ValueError(f"Chave de ordenação desconhecida: {self.chave}")
        if self.direcao not in ('asc', 'desc'):
            raise ValueError(f"Direção de ordenação inválida: {self.direcao}")

    def alternar(self, chave):
        """Mesma chave inverte a direção; chave nova começa ascendente."""
        if chave == self.chave and self.direcao == 'asc':
            return Ordenacao(chave, 'desc')
        return Ordenacao(chave, 'asc')


def filtrar(visitas, filtros: Optional[FiltrosVisita] = None) -> List[Visit]:
    filtros = filtros or FiltrosVisita()
    return [v for v in visitas if filtros.aceita(v)]


def _duracao(inicio, fim):
    valido = inicio.notna() & fim.notna() & (fim >= inicio)
    return np.where(valido, (fim - inicio) / 1000, 0.0)


def _decorrido(inicio, agora):
    return np.where(inicio.notna(), (agora - inicio) / 1000, 0.0)


def montar_tabela(visitas, agora) -> pd.DataFrame:
    """
    DataFrame com os campos ordenáveis e as chaves derivadas de cada visita.

    O índice é a posição da visita na sequência recebida.
    """
    colunas = {}
    for attr in _ATRIBUTOS_ORDENAVEIS:
        valores = [getattr(v, attr) for v in visitas]
        dtype = 'float64' if attr in _NUMERICOS else object
        colunas[CHAVES_VISITA[attr]] = pd.Series(valores, dtype=dtype)
    tabela = pd.DataFrame(colunas)
    tabela['orderType'] = pd.Series([', '.join(v.order_type) for v in visitas], dtype=object)

    status = tabela['status']
    chegada = tabela['arrivalTimestamp']
    manutencao = tabela['maintenanceStartTimestamp']
    peca = tabela['awaitingPartTimestamp']
    fim = tabela['finishTimestamp']

    tabela['queueTime'] = np.where(
        status == EM_FILA, _decorrido(chegada, agora), _duracao(chegada, manutencao))
    tabela['maintenanceTime'] = np.where(
        status == EM_MANUTENCAO, _decorrido(manutencao, agora), _duracao(manutencao, peca.fillna(fim)))
    tabela['partsTime'] = np.where(
        status == AGUARDANDO_PECA, _decorrido(peca, agora), _duracao(peca, fim))
    tabela['totalTime'] = np.where(
        status != FINALIZADO, _decorrido(chegada, agora), _duracao(chegada, fim))
    return tabela


def montar_visao(visitas, filtros: Optional[FiltrosVisita] = None,
                 ordenacao: Optional[Ordenacao] = None, agora=0) -> List[Visit]:
    """
    Filtra e ordena as visitas para a lista.

    A ordenação é estável nas duas direções e valores ausentes ficam
    sempre no fim. O resultado é sempre um subconjunto da entrada.
    """
    ordenacao = ordenacao or Ordenacao()
    filtradas = filtrar(visitas, filtros)
    if not filtradas:
        return []

    tabela = montar_tabela(filtradas, agora)
    ordem = tabela.sort_values(
        ordenacao.chave,
        ascending=ordenacao.direcao == 'asc',
        kind='mergesort',
        na_position='last'
    ).index
    return [filtradas[i] for i in ordem]


def oficinas_presentes(visitas) -> List[str]:
    """Oficinas que aparecem nas visitas, na ordem da primeira ocorrência."""
    return list(dict.fromkeys(v.workshop for v in visitas if v.workshop))
