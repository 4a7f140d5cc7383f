from datetime import datetime

import pytest

from core.modelos import Fleet
from core.transicoes import ErroValidacao, ValoresFormulario
from data.config import CONFIGURACOES, EM_FILA, EM_MANUTENCAO, FINALIZADO, MOVIMENTACAO
from data.manager import DadosNovaVisita, RepositorioVisitas


def _dados(frota='f1', tipos=('Corretiva',), chegada=1_000):
    return DadosNovaVisita(fleet_id=frota, plate='abc1d23', carrier='transp', order_type=list(tipos),
                           workshop='CMC', arrival_timestamp=chegada)


def test_ids_sequenciais(gerenciador):
    primeira = gerenciador.registrar_visita(_dados(), 'admin01')
    segunda = gerenciador.registrar_visita(_dados(frota='F2'), 'admin01')
    assert primeira.id == 'V001'
    assert segunda.id == 'V002'


def test_proximo_id_ignora_ids_fora_do_padrao(nova_visita):
    visitas = [nova_visita(id='V009'), nova_visita(id='X100'), nova_visita(id='V010')]
    assert RepositorioVisitas.proximo_id(visitas) == 'V011'
    assert RepositorioVisitas.proximo_id([]) == 'V001'


def test_nova_visita_cria_frota(gerenciador, relogio):
    visita = gerenciador.registrar_visita(_dados(), 'admin01')

    assert visita.status == EM_FILA
    assert visita.fleet_id == 'F1'
    assert visita.plate == 'ABC1D23'
    assert visita.created_by == 'admin01'
    assert visita.created_at == relogio()
    frota = gerenciador.frotas.obter('F1')
    assert frota == Fleet('F1', 'ABC1D23', CONFIGURACOES['equipamento_padrao'], 'TRANSP')


def test_nova_visita_com_data_local(gerenciador):
    chegada = datetime(2024, 5, 10, 8, 30)
    visita = gerenciador.registrar_visita(_dados(chegada=chegada), 'admin01')
    assert visita.arrival_timestamp == int(chegada.timestamp() * 1000)


def test_nova_visita_com_foto(gerenciador):
    dados = _dados()
    dados.image_url = 'data:image/png;base64,AAA'
    visita = gerenciador.registrar_visita(dados, 'admin01')
    assert gerenciador.visitas.obter(visita.id).image_url == 'data:image/png;base64,AAA'


def test_nova_visita_invalida(gerenciador):
    with pytest.raises(ErroValidacao):
        gerenciador.registrar_visita(_dados(tipos=()), 'admin01')
    with pytest.raises(ErroValidacao):
        gerenciador.registrar_visita(_dados(frota=' '), 'admin01')
    assert gerenciador.carregar_visitas() == []


def test_alteracao_persistida_e_auditada(gerenciador, relogio):
    visita = gerenciador.registrar_visita(_dados(), 'admin01')
    relogio.avancar(60_000)

    nova = gerenciador.alterar_status(visita.id, EM_MANUTENCAO, ValoresFormulario(), 'Quemoel')

    assert gerenciador.visitas.obter(visita.id) == nova
    assert nova.updated_by == 'Quemoel'
    assert nova.maintenance_start_timestamp == relogio()
    ultima = gerenciador.atividades.listar()[0]
    assert ultima.action == 'UPDATE'
    assert ultima.details == f"Atualizou a visita {visita.id} para o status Em Manutenção"


def test_movimentacao_persistida(gerenciador, relogio):
    visita = gerenciador.registrar_visita(_dados(tipos=('Preventiva', 'Calibragem')), 'admin01')
    gerenciador.alterar_status(visita.id, EM_MANUTENCAO,
                               ValoresFormulario(order_type_for_service='Preventiva'), 'admin01')
    relogio.avancar(1000)
    gerenciador.alterar_status(visita.id, MOVIMENTACAO,
                               ValoresFormulario(order_type_for_service='Preventiva'), 'admin01')

    salva = gerenciador.visitas.obter(visita.id)
    assert salva.order_type == ('Calibragem',)
    assert len(salva.service_history) == 1
    assert salva.service_history[0].finish_timestamp == relogio()


def test_erro_de_validacao_nao_altera_nada(gerenciador):
    visita = gerenciador.registrar_visita(_dados(tipos=('Preventiva', 'Calibragem')), 'admin01')
    with pytest.raises(ErroValidacao):
        gerenciador.alterar_status(visita.id, EM_MANUTENCAO, ValoresFormulario(), 'admin01')
    assert gerenciador.visitas.obter(visita.id) == visita
    assert len(gerenciador.atividades.listar()) == 1


def test_visita_inexistente(gerenciador):
    assert gerenciador.alterar_status('V999', FINALIZADO, ValoresFormulario(), 'admin01') is None
    assert gerenciador.excluir_visita('V999', 'admin01') is False
    assert gerenciador.atividades.listar() == []


def test_excluir_visita(gerenciador):
    visita = gerenciador.registrar_visita(_dados(), 'admin01')
    assert gerenciador.excluir_visita(visita.id, 'admin01')
    assert gerenciador.carregar_visitas() == []
    assert gerenciador.atividades.listar()[0].details == "Excluiu a visita V001 da frota F1."


def test_frota_com_visitas_nao_e_excluida(gerenciador):
    gerenciador.registrar_visita(_dados(), 'admin01')

    resultado = gerenciador.excluir_frota('F1', 'admin01')

    assert resultado.success is False
    assert resultado.has_visits is True
    assert gerenciador.frotas.obter('F1') is not None


def test_excluir_frota_sem_visitas(gerenciador):
    gerenciador.frotas.adicionar(Fleet('F9', 'XYZ', 'Carreta', 'T'))
    assert gerenciador.excluir_frota('F9', 'admin01').success
    assert gerenciador.frotas.obter('F9') is None
    inexistente = gerenciador.excluir_frota('F9', 'admin01')
    assert not inexistente.success and not inexistente.has_visits


def test_listagem_da_chegada_mais_recente(gerenciador):
    gerenciador.registrar_visita(_dados(chegada=1000), 'admin01')
    gerenciador.registrar_visita(_dados(chegada=5000), 'admin01')
    gerenciador.registrar_visita(_dados(chegada=3000), 'admin01')
    assert [v.arrival_timestamp for v in gerenciador.carregar_visitas()] == [5000, 3000, 1000]


def test_registro_corrompido_e_ignorado(gerenciador, armazenamento):
    armazenamento.gravar(CONFIGURACOES['armazenamento']['visitas'], [
        {'id': 'V001', 'fleetId': 'F1', 'plate': '', 'equipmentType': '', 'orderType': [],
         'status': EM_FILA, 'arrivalTimestamp': 1},
        {'id': 'V002', 'fleetId': 'F1', 'plate': '', 'equipmentType': '', 'orderType': 'Corretiva',
         'status': EM_FILA, 'arrivalTimestamp': 2},
    ])
    assert [v.id for v in gerenciador.carregar_visitas()] == ['V002']


def test_quantidade_infinita_armazenada_e_descartada(gerenciador, armazenamento):
    armazenamento.gravar(CONFIGURACOES['armazenamento']['visitas'], [
        {'id': 'V001', 'fleetId': 'F1', 'plate': '', 'equipmentType': '', 'orderType': ['Corretiva'],
         'status': EM_FILA, 'arrivalTimestamp': 1, 'partQuantity': '1e400'},
        {'id': 'V002', 'fleetId': 'F1', 'plate': '', 'equipmentType': '', 'orderType': ['Corretiva'],
         'status': EM_FILA, 'arrivalTimestamp': 2, 'partQuantity': 'inf'},
    ])
    visitas = gerenciador.carregar_visitas()
    assert [v.id for v in visitas] == ['V002', 'V001']
    assert all(v.part_quantity is None for v in visitas)


def test_entrada_que_nao_e_dicionario_e_ignorada(gerenciador, armazenamento):
    armazenamento.gravar(CONFIGURACOES['armazenamento']['visitas'], [
        'lixo', 42, None,
        {'id': 'V002', 'fleetId': 'F1', 'plate': '', 'equipmentType': '', 'orderType': 'Corretiva',
         'status': EM_FILA, 'arrivalTimestamp': 2},
    ])
    assert [v.id for v in gerenciador.carregar_visitas()] == ['V002']


def test_resumo_e_historico_da_frota(gerenciador):
    gerenciador.registrar_visita(_dados(chegada=1000), 'admin01')
    gerenciador.registrar_visita(_dados(chegada=2000), 'admin01')
    gerenciador.registrar_visita(_dados(frota='F2', chegada=1500), 'admin01')

    resumo = gerenciador.resumo_frotas()
    assert resumo['F1'] == {'total_visitas': 2, 'ultima_chegada': 2000}
    assert [v.id for v in gerenciador.historico_frota('F2')] == ['V003']


def test_armazenamento_chave_valor(armazenamento):
    assert armazenamento.ler('nada', []) == []
    armazenamento.gravar('chave', {'a': 1})
    armazenamento.gravar('chave', {'a': 2})
    assert armazenamento.ler('chave') == {'a': 2}
    assert armazenamento.existe('chave')
    armazenamento.remover('chave')
    assert not armazenamento.existe('chave')
