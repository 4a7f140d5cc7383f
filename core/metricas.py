"""
core/metricas.py
Tempos de permanência e métricas de SLA do monitor.

Tudo aqui é função pura de (visitas, agora): nada é armazenado em cache,
porque os tempos em andamento mudam a cada chamada. A cadência de
atualização fica com a interface.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

import numpy as np
import pandas as pd

from core.modelos import Visit
from data.config import CONFIGURACOES, EM_FILA, EM_MANUTENCAO, AGUARDANDO_PECA, FINALIZADO

SLA = CONFIGURACOES['sla']
JANELA_FINALIZADAS_MS = 24 * 60 * 60 * 1000

# chave -> (título, tipos de ordem do balde, meta em segundos)
BALDES_MANUTENCAO = {
    'corretiva': ('Manutenção Corretiva', {'Corretiva'}, SLA['corretiva']),
    'preventiva': ('Manutenção Preventiva/Preditiva', {'Preventiva', 'Preditiva'}, SLA['preventiva']),
    'inspecao': ('Inspeção', {'Inspeção'}, SLA['inspecao']),
    'calibragem': ('Calibragem', {'Calibragem'}, SLA['calibragem']),
}


# ── Durações ──────────────────────────────────────────────────────────────────

def duracao_segundos(inicio, fim):
    """Duração fechada em segundos; 0 se faltar um extremo ou se fim < inicio."""
    if inicio is None or fim is None or fim < inicio:
        return 0
    return (fim - inicio) / 1000


def tempo_decorrido(inicio, agora):
    """Tempo em andamento desde `inicio`; 0 se não houver início."""
    if inicio is None:
        return 0
    return (agora - inicio) / 1000


def inicio_cronometro(visita: Visit):
    """Início do cronômetro exibido para o status atual da visita."""
    if visita.status == EM_MANUTENCAO:
        return visita.maintenance_start_timestamp or visita.arrival_timestamp
    if visita.status == AGUARDANDO_PECA:
        return (visita.awaiting_part_timestamp or visita.maintenance_start_timestamp
                or visita.arrival_timestamp)
    return visita.arrival_timestamp


def formatar_duracao(segundos) -> str:
    if segundos is None or segundos != segundos or segundos < 0:
        return '00:00:00'
    horas = int(segundos // 3600)
    minutos = int((segundos % 3600) // 60)
    segs = int(segundos % 60)
    return f"{horas:02d}:{minutos:02d}:{segs:02d}"


def mesma_data(timestamp, data) -> bool:
    """Compara o dia local do timestamp (ms) com a data informada."""
    if timestamp is None:
        return False
    return datetime.fromtimestamp(timestamp / 1000).date() == data


# ── Resultado ─────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class MetricaSLA:
    titulo: str
    media_segundos: float
    quantidade: int
    meta_segundos: Optional[int] = None

    @property
    def vazio(self):
        """Sem veículos: a interface mostra "Nenhum veículo." em vez de 00:00:00."""
        return self.quantidade == 0

    @property
    def progresso(self):
        if not self.meta_segundos or self.media_segundos <= 0:
            return 0
        return min(100, self.media_segundos / self.meta_segundos * 100)

    @property
    def acima_sla(self):
        return self.progresso >= 100


@dataclass
class PainelMonitor:
    grupos: Dict[str, List[Visit]]
    metricas: Dict[str, MetricaSLA]
    finalizadas_periodo: List[Visit] = field(default_factory=list)
    todas_finalizadas: List[Visit] = field(default_factory=list)
    visitas_filtradas: List[Visit] = field(default_factory=list)

    @property
    def quantidade_finalizadas_periodo(self):
        return len(self.finalizadas_periodo)

    @property
    def sem_veiculos_em_operacao(self):
        return all(not lista for lista in self.grupos.values())


# ── Cálculo ───────────────────────────────────────────────────────────────────

def _inicio_metrica(visita: Visit):
    if visita.status == EM_FILA:
        return visita.arrival_timestamp
    if visita.status == EM_MANUTENCAO:
        return visita.maintenance_start_timestamp
    if visita.status == AGUARDANDO_PECA:
        return visita.awaiting_part_timestamp
    return None


def _quadro_ativas(visitas, agora):
    """DataFrame das visitas ativas com o tempo decorrido no status atual."""
    quadro = pd.DataFrame({
        'status': pd.Series([v.status for v in visitas], dtype=object),
        'tipos': pd.Series([v.order_type for v in visitas], dtype=object),
        'inicio': pd.Series([_inicio_metrica(v) for v in visitas], dtype='float64'),
    })
    quadro['decorrido'] = np.where(
        quadro['inicio'].notna(),
        (agora - quadro['inicio']) / 1000,
        0.0
    )
    return quadro


def _metrica(titulo, decorridos, meta=None):
    quantidade = int(len(decorridos))
    media = float(decorridos.mean()) if quantidade else 0.0
    return MetricaSLA(titulo, media, quantidade, meta)


def _contem_algum(tipos_por_visita, tipos):
    return pd.Series([bool(set(t) & tipos) for t in tipos_por_visita],
                     index=tipos_por_visita.index, dtype=bool)


def calcular_metricas(visitas, agora, data_filtro=None, oficina_filtro=None) -> PainelMonitor:
    """
    Recalcula o painel do monitor de tempo.

    O filtro de oficina é aplicado antes de tudo. O filtro de data (dia
    local de chegada) restringe as listas e as métricas das visitas ativas.
    Uma visita em manutenção entra em todos os baldes dos tipos de ordem
    que carrega.

    Args:
        visitas: sequência de Visit; não é alterada
        agora: instante atual em milissegundos
        data_filtro: datetime.date opcional
        oficina_filtro: nome da oficina ou None/'all'
    """
    if oficina_filtro and oficina_filtro != 'all':
        visitas = [v for v in visitas if v.workshop == oficina_filtro]
    else:
        visitas = list(visitas)

    if data_filtro is not None:
        por_data = [v for v in visitas if mesma_data(v.arrival_timestamp, data_filtro)]
    else:
        por_data = visitas

    ativas = [v for v in por_data if v.status != FINALIZADO]
    grupos = {
        EM_FILA: sorted((v for v in ativas if v.status == EM_FILA),
                        key=lambda v: v.arrival_timestamp),
        EM_MANUTENCAO: sorted((v for v in ativas if v.status == EM_MANUTENCAO),
                              key=lambda v: v.maintenance_start_timestamp or 0),
        AGUARDANDO_PECA: sorted((v for v in ativas if v.status == AGUARDANDO_PECA),
                                key=lambda v: v.awaiting_part_timestamp or 0),
    }

    quadro = _quadro_ativas(ativas, agora)
    em_manutencao = quadro['status'] == EM_MANUTENCAO

    metricas = {
        'fila': _metrica('Tempo em Fila', quadro.loc[quadro['status'] == EM_FILA, 'decorrido'],
                         SLA['fila']),
        'aguardando_peca': _metrica('Aguardando Peça',
                                    quadro.loc[quadro['status'] == AGUARDANDO_PECA, 'decorrido']),
    }
    for chave, (titulo, tipos, meta) in BALDES_MANUTENCAO.items():
        membros = em_manutencao & _contem_algum(quadro['tipos'], tipos)
        metricas[chave] = _metrica(titulo, quadro.loc[membros, 'decorrido'], meta)

    if data_filtro is not None:
        finalizadas_periodo = [v for v in por_data if v.status == FINALIZADO]
    else:
        corte = agora - JANELA_FINALIZADAS_MS
        finalizadas_periodo = [
            v for v in visitas
            if v.status == FINALIZADO and v.finish_timestamp and v.finish_timestamp >= corte
        ]
    finalizadas_periodo.sort(key=lambda v: v.finish_timestamp or 0, reverse=True)

    return PainelMonitor(
        grupos=grupos,
        metricas=metricas,
        finalizadas_periodo=finalizadas_periodo,
        todas_finalizadas=[v for v in visitas if v.status == FINALIZADO],
        visitas_filtradas=por_data,
    )


def contar_por_tipo_ordem(visitas) -> Dict[str, int]:
    """Distribuição das visitas finalizadas por tipo de ordem."""
    tipos = pd.Series([t for v in visitas if v.status == FINALIZADO for t in v.order_type],
                      dtype=object)
    contagem = tipos.value_counts()
    return {tipo: int(contagem[tipo]) for tipo in CONFIGURACOES['tipos_ordem']
            if tipo in contagem.index}
