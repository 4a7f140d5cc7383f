import pytest

from core.metricas import duracao_segundos
from core.transicoes import (
    ErroValidacao, ValoresFormulario, aplicar_transicao, descrever_transicao,
    valores_iniciais, visita_finalizada_com_pendencias
)
from data.config import AGUARDANDO_PECA, EM_FILA, EM_MANUTENCAO, FINALIZADO, MOVIMENTACAO


def test_visita_de_ordem_unica_do_inicio_ao_fim(nova_visita):
    visita = nova_visita(order_type=['Corretiva'], arrival=0)

    em_manutencao = aplicar_transicao(visita, EM_MANUTENCAO, ValoresFormulario(), 1000)
    assert em_manutencao.maintenance_start_timestamp == 1000

    finalizada = aplicar_transicao(em_manutencao, FINALIZADO, ValoresFormulario(), 5000)
    assert finalizada.finish_timestamp == 5000
    assert duracao_segundos(finalizada.maintenance_start_timestamp, finalizada.finish_timestamp) == 4


def test_movimentacao_fecha_tarefa_e_inicia_a_proxima(nova_visita):
    visita = nova_visita(order_type=['Preventiva', 'Calibragem'], status=EM_MANUTENCAO,
                         arrival=0, maintenance_start_timestamp=2000,
                         service_performed='TROCA DE OLEO', box_number='3')
    valores = ValoresFormulario(order_type_for_service='Preventiva',
                                service_performed='TROCA DE OLEO', workshop='CMC', box_number='3')

    nova = aplicar_transicao(visita, MOVIMENTACAO, valores, 9000)

    assert len(nova.service_history) == 1
    registro = nova.service_history[0]
    assert registro.order_type == 'Preventiva'
    assert registro.start_timestamp == 2000
    assert registro.finish_timestamp == 9000
    assert registro.service_performed == 'TROCA DE OLEO'
    assert registro.box_number == '3'
    assert nova.order_type == ('Calibragem',)
    assert nova.status == EM_MANUTENCAO
    assert nova.maintenance_start_timestamp == 9000
    assert nova.service_performed is None
    assert nova.box_number is None
    assert visita.order_type == ('Preventiva', 'Calibragem')


def test_movimentacao_remove_so_a_primeira_ocorrencia(nova_visita):
    visita = nova_visita(order_type=['Corretiva', 'Corretiva', 'Inspeção'], status=EM_MANUTENCAO,
                         maintenance_start_timestamp=100)
    nova = aplicar_transicao(visita, MOVIMENTACAO,
                             ValoresFormulario(order_type_for_service='Corretiva'), 200)
    assert nova.order_type == ('Corretiva', 'Inspeção')


def test_movimentacao_sem_inicio_de_manutencao_usa_chegada(nova_visita):
    visita = nova_visita(order_type=['Preventiva', 'Inspeção'], arrival=50)
    nova = aplicar_transicao(visita, MOVIMENTACAO,
                             ValoresFormulario(order_type_for_service='Inspeção'), 80)
    assert nova.service_history[0].start_timestamp == 50
    assert nova.order_type == ('Preventiva',)


def test_primeira_escrita_vence(nova_visita):
    visita = nova_visita()
    primeira = aplicar_transicao(visita, EM_MANUTENCAO, ValoresFormulario(), 1000)
    segunda = aplicar_transicao(primeira, EM_MANUTENCAO, ValoresFormulario(), 3000)
    assert segunda.maintenance_start_timestamp == 1000

    peca = aplicar_transicao(segunda, AGUARDANDO_PECA, ValoresFormulario(), 4000)
    de_volta = aplicar_transicao(peca, EM_MANUTENCAO, ValoresFormulario(), 6000)
    assert de_volta.maintenance_start_timestamp == 1000
    assert de_volta.awaiting_part_timestamp == 4000


def test_timestamps_nao_antecedem_os_anteriores(nova_visita):
    visita = nova_visita(arrival=10_000)

    em_manutencao = aplicar_transicao(visita, EM_MANUTENCAO, ValoresFormulario(), 5_000)
    assert em_manutencao.maintenance_start_timestamp >= em_manutencao.arrival_timestamp

    finalizada = aplicar_transicao(em_manutencao, FINALIZADO,
                                   ValoresFormulario(finish_timestamp=1_000), 20_000)
    assert finalizada.finish_timestamp >= finalizada.maintenance_start_timestamp

    com_box = aplicar_transicao(visita, EM_FILA,
                                ValoresFormulario(box_number='7', box_entry_timestamp=2_000), 30_000)
    assert com_box.box_entry_timestamp == 10_000


def test_peca_direto_da_fila_abre_a_manutencao(nova_visita):
    visita = nova_visita(arrival=1000)

    peca = aplicar_transicao(visita, AGUARDANDO_PECA, ValoresFormulario(), 4000)
    assert peca.maintenance_start_timestamp == 4000
    assert peca.awaiting_part_timestamp == 4000

    de_volta = aplicar_transicao(peca, EM_MANUTENCAO, ValoresFormulario(), 6000)
    assert de_volta.maintenance_start_timestamp == 4000
    assert de_volta.awaiting_part_timestamp >= de_volta.maintenance_start_timestamp

    finalizada = aplicar_transicao(de_volta, FINALIZADO, ValoresFormulario(), 9000)
    assert (finalizada.arrival_timestamp <= finalizada.maintenance_start_timestamp
            <= finalizada.awaiting_part_timestamp <= finalizada.finish_timestamp)


@pytest.mark.parametrize('quantidade', ['inf', '1e400', 'nan', float('inf'), 10 ** 400])
def test_quantidade_invalida_e_descartada(nova_visita, quantidade):
    visita = nova_visita()
    nova = aplicar_transicao(visita, EM_MANUTENCAO, ValoresFormulario(part_quantity=quantidade), 1000)
    assert nova.part_quantity is None
    assert nova.maintenance_start_timestamp == 1000


def test_finalizacao_manual_e_respeitada(nova_visita):
    visita = nova_visita(arrival=0, status=EM_MANUTENCAO, maintenance_start_timestamp=1000)
    finalizada = aplicar_transicao(visita, FINALIZADO,
                                   ValoresFormulario(finish_timestamp=3000), 9000)
    assert finalizada.finish_timestamp == 3000


def test_visita_finalizada_nao_muda(nova_visita):
    visita = nova_visita(status=FINALIZADO, finish_timestamp=5000)

    mesma = aplicar_transicao(visita, FINALIZADO, ValoresFormulario(finish_timestamp=9000), 9000)
    assert mesma.finish_timestamp == 5000

    with pytest.raises(ErroValidacao):
        aplicar_transicao(visita, EM_MANUTENCAO, ValoresFormulario(), 9000)


def test_multiplas_ordens_exigem_selecao(nova_visita):
    visita = nova_visita(order_type=['Preventiva', 'Calibragem'])
    with pytest.raises(ErroValidacao, match="selecione qual tipo de ordem"):
        aplicar_transicao(visita, EM_MANUTENCAO, ValoresFormulario(), 1000)

    # em fila a seleção não é necessária
    assert aplicar_transicao(visita, EM_FILA, ValoresFormulario(), 1000).status == EM_FILA


def test_tipo_selecionado_deve_pertencer_a_visita(nova_visita):
    visita = nova_visita(order_type=['Preventiva', 'Calibragem'])
    with pytest.raises(ErroValidacao):
        aplicar_transicao(visita, MOVIMENTACAO,
                          ValoresFormulario(order_type_for_service='Corretiva'), 1000)


def test_movimentacao_exige_mais_de_uma_ordem(nova_visita):
    with pytest.raises(ErroValidacao):
        aplicar_transicao(nova_visita(), MOVIMENTACAO,
                          ValoresFormulario(order_type_for_service='Corretiva'), 1000)


def test_status_invalido(nova_visita):
    with pytest.raises(ErroValidacao):
        aplicar_transicao(nova_visita(), 'Cancelado', ValoresFormulario(), 1000)


def test_entrada_no_box_automatica(nova_visita):
    visita = nova_visita(arrival=100)
    nova = aplicar_transicao(visita, EM_FILA, ValoresFormulario(box_number='2'), 700)
    assert nova.box_entry_timestamp == 700
    mantida = aplicar_transicao(nova, EM_MANUTENCAO, ValoresFormulario(box_number='2'), 900)
    assert mantida.box_entry_timestamp == 700


def test_calibragem_do_formulario(nova_visita):
    visita = nova_visita(order_type=['Calibragem'])
    valores = ValoresFormulario(calibration_data={'trailer1': {'axle1Left': '100'}})
    nova = aplicar_transicao(visita, EM_MANUTENCAO, valores, 1000)
    assert nova.calibration_data.trailer1.axle1_left == 100.0


def test_valores_iniciais(nova_visita):
    unica = valores_iniciais(nova_visita(workshop='CMC'))
    assert unica.order_type_for_service == 'Corretiva'
    assert unica.workshop == 'CMC'
    assert valores_iniciais(nova_visita(order_type=['Preventiva', 'Inspeção'])).order_type_for_service is None


def test_descricao_das_transicoes(nova_visita):
    visita = nova_visita(order_type=['Preventiva', 'Calibragem'], status=EM_MANUTENCAO,
                         maintenance_start_timestamp=0)
    rolada = aplicar_transicao(visita, MOVIMENTACAO,
                               ValoresFormulario(order_type_for_service='Preventiva'), 10)
    assert 'Preventiva' in descrever_transicao(visita, rolada)

    simples = nova_visita()
    atualizada = aplicar_transicao(simples, EM_MANUTENCAO, ValoresFormulario(), 10)
    assert descrever_transicao(simples, atualizada) == "Atualizou a visita V001 para o status Em Manutenção"


def test_finalizada_com_pendencias_e_sinalizada(nova_visita):
    visita = nova_visita(order_type=['Preventiva', 'Calibragem'])
    finalizada = aplicar_transicao(visita, FINALIZADO,
                                   ValoresFormulario(order_type_for_service='Preventiva'), 1000)
    assert visita_finalizada_com_pendencias(finalizada)
    assert not visita_finalizada_com_pendencias(nova_visita())


def test_foto_da_visita(nova_visita):
    visita = nova_visita(image_url='data:image/png;base64,AAA')

    sem_nova_foto = aplicar_transicao(visita, EM_MANUTENCAO, ValoresFormulario(), 1000)
    assert sem_nova_foto.image_url == 'data:image/png;base64,AAA'
    assert valores_iniciais(sem_nova_foto).image_url == 'data:image/png;base64,AAA'

    trocada = aplicar_transicao(sem_nova_foto, AGUARDANDO_PECA,
                                ValoresFormulario(image_url='data:image/jpeg;base64,BBB'), 2000)
    assert trocada.image_url == 'data:image/jpeg;base64,BBB'
    assert trocada.para_dict()['imageUrl'] == 'data:image/jpeg;base64,BBB'
