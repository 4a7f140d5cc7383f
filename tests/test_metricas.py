from datetime import datetime

import pytest

from core.metricas import (
    MetricaSLA, calcular_metricas, contar_por_tipo_ordem, duracao_segundos,
    formatar_duracao, inicio_cronometro, tempo_decorrido
)
from data.config import AGUARDANDO_PECA, EM_FILA, EM_MANUTENCAO, FINALIZADO

AGORA = 1_700_000_000_000
HORA = 3_600_000


def test_sem_visitas_nao_gera_divisao_por_zero():
    painel = calcular_metricas([], AGORA)
    assert set(painel.metricas) == {'fila', 'aguardando_peca', 'corretiva', 'preventiva',
                                    'inspecao', 'calibragem'}
    for metrica in painel.metricas.values():
        assert metrica.quantidade == 0
        assert metrica.media_segundos == 0
        assert metrica.vazio
        assert metrica.progresso == 0
    assert painel.sem_veiculos_em_operacao
    assert painel.quantidade_finalizadas_periodo == 0


def test_visita_entra_em_todos_os_baldes_dos_seus_tipos(nova_visita):
    visitas = [
        nova_visita(id='V001', order_type=['Corretiva'], status=EM_MANUTENCAO,
                    maintenance_start_timestamp=AGORA - HORA),
        nova_visita(id='V002', order_type=['Corretiva', 'Calibragem'], status=EM_MANUTENCAO,
                    maintenance_start_timestamp=AGORA - HORA // 2),
    ]
    metricas = calcular_metricas(visitas, AGORA).metricas

    assert metricas['corretiva'].media_segundos == pytest.approx(2700)
    assert metricas['corretiva'].quantidade == 2
    assert metricas['calibragem'].media_segundos == pytest.approx(1800)
    assert metricas['calibragem'].quantidade == 1
    assert metricas['preventiva'].vazio


def test_preventiva_e_preditiva_compartilham_balde(nova_visita):
    visitas = [
        nova_visita(id='V001', order_type=['Preditiva'], status=EM_MANUTENCAO,
                    maintenance_start_timestamp=AGORA - 1000),
        nova_visita(id='V002', order_type=['Preventiva'], status=EM_MANUTENCAO,
                    maintenance_start_timestamp=AGORA - 3000),
    ]
    preventiva = calcular_metricas(visitas, AGORA).metricas['preventiva']
    assert preventiva.quantidade == 2
    assert preventiva.media_segundos == pytest.approx(2)


def test_fila_e_aguardando_peca(nova_visita):
    visitas = [
        nova_visita(id='V001', arrival=AGORA - 2 * HORA),
        nova_visita(id='V002', arrival=AGORA - 4 * HORA),
        nova_visita(id='V003', status=AGUARDANDO_PECA, arrival=0,
                    maintenance_start_timestamp=10, awaiting_part_timestamp=AGORA - HORA),
    ]
    painel = calcular_metricas(visitas, AGORA)

    assert painel.metricas['fila'].media_segundos == pytest.approx(3 * 3600)
    assert painel.metricas['aguardando_peca'].media_segundos == pytest.approx(3600)
    assert painel.metricas['aguardando_peca'].meta_segundos is None
    assert [v.id for v in painel.grupos[EM_FILA]] == ['V002', 'V001']
    assert [v.id for v in painel.grupos[AGUARDANDO_PECA]] == ['V003']


def test_progresso_do_sla():
    assert MetricaSLA('x', 1800, 1, 3600).progresso == 50
    acima = MetricaSLA('x', 7200, 1, 3600)
    assert acima.progresso == 100
    assert acima.acima_sla
    assert MetricaSLA('x', 1800, 1).progresso == 0


def test_finalizadas_nas_ultimas_24h(nova_visita):
    visitas = [
        nova_visita(id='V001', status=FINALIZADO, finish_timestamp=AGORA - HORA),
        nova_visita(id='V002', status=FINALIZADO, finish_timestamp=AGORA - 30 * HORA),
        nova_visita(id='V003', status=EM_MANUTENCAO, maintenance_start_timestamp=AGORA),
    ]
    painel = calcular_metricas(visitas, AGORA)

    assert [v.id for v in painel.finalizadas_periodo] == ['V001']
    assert len(painel.todas_finalizadas) == 2
    assert not painel.sem_veiculos_em_operacao


def test_filtro_de_data_e_oficina(nova_visita):
    chegada = AGORA - HORA
    dia = datetime.fromtimestamp(chegada / 1000).date()
    visitas = [
        nova_visita(id='V001', arrival=chegada, workshop='CMC'),
        nova_visita(id='V002', arrival=chegada, workshop='Monte Líbano'),
        nova_visita(id='V003', arrival=chegada - 72 * HORA, workshop='CMC'),
        nova_visita(id='V004', arrival=chegada, workshop='CMC', status=FINALIZADO,
                    finish_timestamp=AGORA - 40 * HORA),
    ]
    painel = calcular_metricas(visitas, AGORA, data_filtro=dia, oficina_filtro='CMC')

    assert [v.id for v in painel.grupos[EM_FILA]] == ['V001']
    assert painel.metricas['fila'].quantidade == 1
    # com filtro de data a janela de 24h não se aplica
    assert [v.id for v in painel.finalizadas_periodo] == ['V004']
    assert {v.id for v in painel.visitas_filtradas} == {'V001', 'V004'}


def test_duracoes():
    assert duracao_segundos(1000, 5000) == 4
    assert duracao_segundos(5000, 1000) == 0
    assert duracao_segundos(None, 1000) == 0
    assert tempo_decorrido(None, AGORA) == 0
    assert tempo_decorrido(AGORA - 1500, AGORA) == 1.5
    assert formatar_duracao(3 * 3600 + 61) == '03:01:01'
    assert formatar_duracao(None) == '00:00:00'


def test_inicio_do_cronometro(nova_visita):
    assert inicio_cronometro(nova_visita(arrival=5)) == 5
    assert inicio_cronometro(nova_visita(arrival=5, status=EM_MANUTENCAO)) == 5
    assert inicio_cronometro(nova_visita(arrival=5, status=AGUARDANDO_PECA,
                                         maintenance_start_timestamp=7,
                                         awaiting_part_timestamp=9)) == 9


def test_contagem_por_tipo_de_ordem(nova_visita):
    visitas = [
        nova_visita(id='V001', order_type=['Corretiva', 'Calibragem'], status=FINALIZADO),
        nova_visita(id='V002', order_type=['Corretiva'], status=FINALIZADO),
        nova_visita(id='V003', order_type=['Inspeção']),
    ]
    assert contar_por_tipo_ordem(visitas) == {'Corretiva': 2, 'Calibragem': 1}
