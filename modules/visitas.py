from datetime import datetime

import pandas as pd
import streamlit as st

from components.interface import ComponentesInterface
from core.filtros import TODOS, FiltrosVisita, Ordenacao, montar_tabela, montar_visao
from core.metricas import inicio_cronometro, tempo_decorrido
from core.modelos import agora_ms
from core.transicoes import (
    ErroValidacao, ValoresFormulario, valores_iniciais, visita_finalizada_com_pendencias
)
from data.config import (
    CONFIGURACOES, EXCLUSAO_VISITAS, FINALIZADO, MOVIMENTACAO, CALIBRAGEM
)
from data.manager import DadosNovaVisita

ROTULOS_ORDENACAO = {
    'arrivalTimestamp': 'Chegada',
    'id': 'Visita',
    'fleetId': 'Frota',
    'plate': 'Placa',
    'status': 'Status',
    'workshop': 'Oficina',
    'finishTimestamp': 'Finalização',
    'queueTime': 'Tempo em Fila',
    'maintenanceTime': 'Tempo em Manutenção',
    'partsTime': 'Tempo Aguardando Peça',
    'totalTime': 'Tempo Total',
}

POSICOES_PNEU = (
    ('axle1Left', 'Eixo 1 Esq.'),
    ('axle1Right', 'Eixo 1 Dir.'),
    ('axle2Left', 'Eixo 2 Esq.'),
    ('axle2Right', 'Eixo 2 Dir.'),
)


class ModuloVisitas:
    """Lista, edição e cadastro de visitas"""

    @classmethod
    def exibir_painel(cls, gerenciador):
        st.subheader("Visitas")
        ComponentesInterface.exibir_notificacao()

        visitas = gerenciador.carregar_visitas()
        filtros = cls._obter_filtros()
        ordenacao = cls._obter_ordenacao()
        agora = agora_ms()
        visao = montar_visao(visitas, filtros, ordenacao, agora)

        if not visao:
            st.info("Nenhuma visita encontrada com os filtros selecionados")
            return

        cls._exibir_tabela(visao, agora)
        visita_id = st.selectbox("Selecionar visita", [v.id for v in visao],
                                 format_func=lambda i: cls._rotulo(visao, i))
        visita = next(v for v in visao if v.id == visita_id)
        cls._exibir_detalhes(gerenciador, visita)

    @staticmethod
    def _rotulo(visao, visita_id):
        v = next(v for v in visao if v.id == visita_id)
        return f"{v.id} · {v.fleet_id} · {v.status}"

    @staticmethod
    def _obter_filtros():
        with st.expander("🔎 Filtros", expanded=False):
            colunas = st.columns(5)
            status = colunas[0].selectbox('Status', [TODOS] + CONFIGURACOES['status'],
                                          format_func=lambda s: 'Todos' if s == TODOS else s)
            tipo = colunas[1].selectbox('Tipo de Ordem', [TODOS] + CONFIGURACOES['tipos_ordem'],
                                        format_func=lambda s: 'Todos' if s == TODOS else s)
            oficina = colunas[2].selectbox('Oficina', [TODOS] + CONFIGURACOES['oficinas'],
                                           format_func=lambda s: 'Todas' if s == TODOS else s)
            frota = colunas[3].text_input('Frota').strip().upper()
            data = colunas[4].date_input('Data de chegada', value=None, format="DD/MM/YYYY")
        return FiltrosVisita(status=status, order_type=tipo, workshop=oficina,
                             fleet_id=frota or None, data=data)

    @staticmethod
    def _obter_ordenacao():
        ordenacao = st.session_state.setdefault('ordenacao_visitas', Ordenacao())
        colunas = st.columns([3, 1])
        chaves = list(ROTULOS_ORDENACAO)
        chave = colunas[0].selectbox('Ordenar por', chaves, index=chaves.index(ordenacao.chave),
                                     format_func=ROTULOS_ORDENACAO.get)
        if chave != ordenacao.chave:
            ordenacao = ordenacao.alternar(chave)
        seta = '⬆️' if ordenacao.direcao == 'asc' else '⬇️'
        if colunas[1].button(f"{seta} Inverter", use_container_width=True):
            ordenacao = ordenacao.alternar(ordenacao.chave)
        st.session_state.ordenacao_visitas = ordenacao
        return ordenacao

    @staticmethod
    def _exibir_tabela(visao, agora):
        tabela = montar_tabela(visao, agora)
        formatar = ComponentesInterface.formatar_tempo
        exibicao = pd.DataFrame({
            'Visita': tabela['id'],
            'Frota': tabela['fleetId'],
            'Placa': tabela['plate'],
            'Tipo de Ordem': tabela['orderType'],
            'Status': tabela['status'],
            'Oficina': tabela['workshop'].fillna('—'),
            'Chegada': [ComponentesInterface.formatar_data(v.arrival_timestamp) for v in visao],
            'Fila': tabela['queueTime'].map(formatar),
            'Manutenção': tabela['maintenanceTime'].map(formatar),
            'Peça': tabela['partsTime'].map(formatar),
            'Total': tabela['totalTime'].map(formatar),
        })
        st.dataframe(exibicao, use_container_width=True, hide_index=True)

    @classmethod
    def _exibir_detalhes(cls, gerenciador, visita):
        with st.container(border=True):
            colunas = st.columns([3, 1])
            colunas[0].markdown(
                f"### {visita.id} · Frota {visita.fleet_id}\n"
                f"**Placa:** {visita.plate} · **Equipamento:** {visita.equipment_type}  \n"
                f"**Tipo de Ordem:** {', '.join(visita.order_type)} · "
                f"**Status:** {visita.status}  \n"
                f"**Chegada:** {ComponentesInterface.formatar_data(visita.arrival_timestamp)} · "
                f"**Finalização:** {ComponentesInterface.formatar_data(visita.finish_timestamp)}"
            )
            if visita.notes:
                colunas[0].caption(f"Observações: {visita.notes}")
            if not visita.finalizada:
                with colunas[1]:
                    cls._cronometro(visita)
            if visita.image_url:
                with colunas[1]:
                    ComponentesInterface.exibir_imagem(visita.image_url, largura=240)
            if visita_finalizada_com_pendencias(visita):
                st.warning("Visita finalizada com mais de um tipo de ordem pendente.")

            if visita.service_history:
                st.markdown("**Serviços concluídos nesta visita**")
                st.dataframe(pd.DataFrame([{
                    'Tipo': log.order_type,
                    'Serviço': log.service_performed or '—',
                    'Peça': log.part_used or '—',
                    'Qtd.': log.part_quantity,
                    'Início': ComponentesInterface.formatar_data(log.start_timestamp),
                    'Fim': ComponentesInterface.formatar_data(log.finish_timestamp),
                    'Duração': ComponentesInterface.formatar_tempo(log.duracao_segundos),
                } for log in visita.service_history]), use_container_width=True, hide_index=True)

        if ComponentesInterface.pode_editar() and not visita.finalizada:
            cls._formulario_edicao(gerenciador, visita)
        if st.session_state.get('user') in EXCLUSAO_VISITAS:
            cls._botao_exclusao(gerenciador, visita)

    @staticmethod
    @st.fragment(run_every=CONFIGURACOES['interface']['intervalo_cronometro'])
    def _cronometro(visita):
        decorrido = tempo_decorrido(inicio_cronometro(visita), agora_ms())
        st.metric(visita.status, ComponentesInterface.formatar_tempo(decorrido))

    @staticmethod
    def _data_hora(rotulo, chave, valor_atual):
        """Data e hora opcionais; None se o usuário não informar"""
        informar = st.checkbox(f"Informar {rotulo.lower()} manualmente", key=f"chk_{chave}")
        if not informar:
            return None
        atual = datetime.fromtimestamp(valor_atual / 1000) if valor_atual else datetime.now()
        colunas = st.columns(2)
        data = colunas[0].date_input(rotulo, value=atual.date(), key=f"data_{chave}",
                                     format="DD/MM/YYYY")
        hora = colunas[1].time_input("Hora", value=atual.time(), key=f"hora_{chave}")
        return datetime.combine(data, hora)

    @classmethod
    def _formulario_edicao(cls, gerenciador, visita):
        iniciais = valores_iniciais(visita)
        st.markdown("#### Atualizar visita")

        status_opcoes = list(CONFIGURACOES['status'])
        if not visita.multiplas_ordens:
            status_opcoes.remove(MOVIMENTACAO)
        novo_status = st.selectbox("Novo status", status_opcoes,
                                   index=status_opcoes.index(visita.status),
                                   key=f"status_{visita.id}")

        tipo = iniciais.order_type_for_service
        if visita.multiplas_ordens:
            tipo = st.selectbox("Tipo de ordem em execução", [None] + list(visita.order_type),
                                format_func=lambda t: 'Selecione...' if t is None else t,
                                key=f"tipo_{visita.id}")

        colunas = st.columns(2)
        oficinas = CONFIGURACOES['oficinas']
        oficina = colunas[0].selectbox(
            "Oficina", oficinas,
            index=oficinas.index(iniciais.workshop) if iniciais.workshop in oficinas else 0,
            key=f"oficina_{visita.id}")
        box = colunas[1].text_input("Box", value=iniciais.box_number or '', key=f"box_{visita.id}")
        entrada_box = cls._data_hora("Entrada no box", f"box_{visita.id}", visita.box_entry_timestamp)

        servico = st.text_area("Serviço executado", value=iniciais.service_performed or '',
                               key=f"servico_{visita.id}")
        colunas = st.columns([3, 1])
        peca = colunas[0].text_input("Peça utilizada", value=iniciais.part_used or '',
                                     key=f"peca_{visita.id}")
        quantidade = colunas[1].number_input("Quantidade", min_value=0, step=1,
                                             value=iniciais.part_quantity or 0,
                                             key=f"qtd_{visita.id}")

        calibragem = None
        if CALIBRAGEM in visita.order_type and tipo in (None, CALIBRAGEM):
            calibragem = cls._formulario_calibragem(visita, iniciais.calibration_data)

        foto = st.file_uploader("Nova foto do veículo", type=CONFIGURACOES['interface']['tipos_imagem'],
                                key=f"foto_{visita.id}")

        fim = None
        if novo_status == FINALIZADO:
            fim = cls._data_hora("Finalização", f"fim_{visita.id}", None)

        if st.button("💾 Salvar", key=f"salvar_{visita.id}", type="primary"):
            valores = ValoresFormulario(
                workshop=oficina,
                order_type_for_service=tipo,
                box_number=box,
                box_entry_timestamp=entrada_box,
                finish_timestamp=fim,
                service_performed=servico.upper(),
                part_used=peca.upper(),
                part_quantity=quantidade or None,
                calibration_data=calibragem,
                image_url=ComponentesInterface.imagem_para_data_uri(foto),
            )
            try:
                nova = gerenciador.alterar_status(visita.id, novo_status, valores,
                                                  st.session_state.user)
            except ErroValidacao as e:
                st.error(str(e))
                return
            if nova is None:
                st.error("Visita não encontrada.")
                return
            # Seleções da tarefa anterior não valem para a próxima
            for prefixo in ("status", "tipo", "foto", "servico", "peca", "qtd", "box"):
                st.session_state.pop(f"{prefixo}_{visita.id}", None)
            ComponentesInterface.notificar('sucesso', f"Visita {nova.id} atualizada: {nova.status}")
            st.rerun()

    @staticmethod
    def _formulario_calibragem(visita, atual):
        atual = atual.para_dict() if atual else {}
        calibragem = {}
        with st.expander("🛞 Calibragem (PSI)"):
            for reboque in ('trailer1', 'trailer2', 'trailer3'):
                st.caption(f"Carreta {reboque[-1]}")
                colunas = st.columns(4)
                pressoes = {}
                for coluna, (posicao, rotulo) in zip(colunas, POSICOES_PNEU):
                    valor = atual.get(reboque, {}).get(posicao)
                    pressoes[posicao] = coluna.number_input(
                        rotulo, min_value=0.0, step=1.0, value=valor,
                        key=f"psi_{visita.id}_{reboque}_{posicao}")
                calibragem[reboque] = pressoes
        return calibragem

    @staticmethod
    def _botao_exclusao(gerenciador, visita):
        with st.popover("🗑️ Excluir visita"):
            st.warning(f"A visita {visita.id} será removida permanentemente.")
            if st.button("Confirmar exclusão", key=f"excluir_{visita.id}"):
                if gerenciador.excluir_visita(visita.id, st.session_state.user):
                    ComponentesInterface.notificar('sucesso', f"Visita {visita.id} excluída")
                else:
                    ComponentesInterface.notificar('erro', f"Visita {visita.id} não encontrada")
                st.rerun()

    @staticmethod
    def exibir_nova_visita(gerenciador):
        """Entrada de veículo na oficina"""
        st.subheader("Nova Visita")
        ComponentesInterface.exibir_notificacao()
        with st.form("nova_visita", clear_on_submit=True):
            st.markdown("**Dados Obrigatórios** (*)")
            colunas = st.columns(2)
            frota = colunas[0].text_input("Frota*", placeholder="Ex: F1234")
            placa = colunas[1].text_input("Placa", placeholder="ABC1D23")
            transportadora = colunas[0].text_input("Transportadora")
            oficina = colunas[1].selectbox("Oficina*", CONFIGURACOES['oficinas'])
            tipos = st.multiselect("Tipos de Ordem*", CONFIGURACOES['tipos_ordem'])
            colunas = st.columns(2)
            agora = datetime.now()
            data = colunas[0].date_input("Data de chegada*", value=agora.date(), format="DD/MM/YYYY")
            hora = colunas[1].time_input("Hora de chegada*", value=agora.time())
            observacoes = st.text_area("Observações")
            foto = st.file_uploader("Foto do veículo", type=CONFIGURACOES['interface']['tipos_imagem'])

            if st.form_submit_button("Registrar entrada"):
                dados = DadosNovaVisita(
                    fleet_id=frota,
                    plate=placa,
                    carrier=transportadora,
                    order_type=tipos,
                    workshop=oficina,
                    arrival_timestamp=datetime.combine(data, hora),
                    notes=observacoes,
                    image_url=ComponentesInterface.imagem_para_data_uri(foto),
                )
                try:
                    visita = gerenciador.registrar_visita(dados, st.session_state.user)
                except ErroValidacao as e:
                    st.error(str(e))
                    return
                ComponentesInterface.notificar(
                    'sucesso', f"Visita {visita.id} registrada para a frota {visita.fleet_id}")
                st.rerun()
