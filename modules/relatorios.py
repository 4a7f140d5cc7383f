from datetime import datetime, timedelta

import pandas as pd
import streamlit as st

from components.interface import ComponentesInterface
from core.assistente import conversar_com_assistente, gerar_relatorio
from core.filtros import filtrar, FiltrosVisita, TODOS
from core.metricas import duracao_segundos
from data.config import CONFIGURACOES


class ModuloRelatorios:
    """Módulo para geração de relatórios analíticos"""

    @classmethod
    def exibir_painel(cls, gerenciador, cliente_ia):
        """Interface principal do módulo de relatórios"""
        st.subheader("Relatórios Analíticos")
        filtros = cls._obter_filtros()
        visitas = cls._aplicar_filtros(gerenciador.carregar_visitas(), filtros)

        aba_relatorio, aba_assistente = st.tabs(["📈 Relatório", "🤖 Assistente"])
        with aba_relatorio:
            if visitas:
                cls._exibir_metricas(visitas)
                cls._exibir_relatorio_ia(cliente_ia, visitas)
            else:
                st.info("Nenhum registro encontrado com os filtros selecionados")
        with aba_assistente:
            cls._exibir_assistente(cliente_ia, gerenciador)

    @classmethod
    def _obter_filtros(cls):
        """Obtém parâmetros de filtragem"""
        with st.container():
            colunas = st.columns(3)
            status_selecionado = colunas[0].selectbox(
                'Status',
                [TODOS] + CONFIGURACOES['status'],
                format_func=lambda s: 'Todos' if s == TODOS else s
            )
            periodo_selecionado = colunas[1].selectbox(
                'Período',
                ['Todos', 'Últimas 24h', 'Últimos 7 dias', 'Personalizado']
            )

            return {
                'status': status_selecionado,
                'periodo': periodo_selecionado,
                'datas': cls._obter_periodo_personalizado(colunas[2], periodo_selecionado)
            }

    @staticmethod
    def _obter_periodo_personalizado(coluna, periodo_selecionado):
        """Obtém intervalo de datas personalizado"""
        if periodo_selecionado == 'Personalizado':
            return (
                coluna.date_input("Data inicial", format="DD/MM/YYYY"),
                coluna.date_input("Data final", format="DD/MM/YYYY")
            )
        return (None, None)

    @staticmethod
    def _aplicar_filtros(visitas, filtros):
        """Filtra por status e pelo período de chegada"""
        visitas = filtrar(visitas, FiltrosVisita(status=filtros['status']))

        inicio = fim = None
        if filtros['periodo'] == 'Últimas 24h':
            inicio = datetime.now() - timedelta(hours=24)
        elif filtros['periodo'] == 'Últimos 7 dias':
            inicio = datetime.now() - timedelta(days=7)
        elif filtros['periodo'] == 'Personalizado' and all(filtros['datas']):
            inicio = datetime.combine(filtros['datas'][0], datetime.min.time())
            fim = datetime.combine(filtros['datas'][1], datetime.max.time())

        if inicio is not None:
            visitas = [v for v in visitas if v.arrival_timestamp >= inicio.timestamp() * 1000]
        if fim is not None:
            visitas = [v for v in visitas if v.arrival_timestamp <= fim.timestamp() * 1000]
        return visitas

    @staticmethod
    def _exibir_metricas(visitas):
        """Tempos médios de fila e manutenção das visitas filtradas"""
        quadro = pd.DataFrame({
            'fila': [duracao_segundos(v.arrival_timestamp, v.maintenance_start_timestamp)
                     for v in visitas],
            'manutencao': [duracao_segundos(v.maintenance_start_timestamp, v.finish_timestamp)
                           for v in visitas],
        })
        medias = quadro[quadro > 0].mean()

        with st.expander("📈 Métricas Detalhadas", expanded=True):
            colunas = st.columns(3)
            colunas[0].metric("Visitas", len(visitas))
            for col, (rotulo, chave) in zip(colunas[1:], [('Tempo Médio em Fila', 'fila'),
                                                            ('Tempo Médio de Manutenção', 'manutencao')]):
                valor = medias.get(chave)
                col.metric(rotulo, ComponentesInterface.formatar_tempo(valor) if pd.notnull(valor) else "N/A")

    @staticmethod
    def _exibir_relatorio_ia(cliente_ia, visitas):
        if st.button("🤖 Gerar relatório com IA"):
            with st.spinner("Gerando relatório..."):
                relatorio = gerar_relatorio(cliente_ia, visitas)
            if relatorio is None:
                st.error("Não foi possível gerar o relatório. Tente novamente mais tarde.")
                return
            st.session_state.relatorio_ia = relatorio

        relatorio = st.session_state.get('relatorio_ia')
        if not relatorio:
            return

        st.markdown(f"### {relatorio['reportTitle']}")
        st.write(relatorio.get('summary', ''))
        metricas = relatorio.get('keyMetrics', {})
        colunas = st.columns(3)
        colunas[0].metric("Total de visitas", metricas.get('totalVisits', '—'))
        colunas[1].metric("Fila média", metricas.get('averageQueueTime', '—'))
        colunas[2].metric("Manutenção média", metricas.get('averageMaintenanceTime', '—'))

        colunas = st.columns(2)
        for coluna, (titulo, chave) in zip(colunas, [('Por tipo de ordem', 'visitsByOrderType'),
                                                      ('Por oficina', 'visitsByWorkshop')]):
            if relatorio[chave]:
                coluna.markdown(f"**{titulo}**")
                coluna.bar_chart(pd.DataFrame(relatorio[chave]).set_index('name')['value'])

        for insight in relatorio['insights']:
            st.markdown(f"- {insight}")

    @staticmethod
    def _exibir_assistente(cliente_ia, gerenciador):
        mensagens = st.session_state.setdefault('chat_assistente', [])
        for mensagem in mensagens:
            with st.chat_message(mensagem['role']):
                st.markdown(mensagem['content'])

        pergunta = st.chat_input("Pergunte sobre as visitas e frotas")
        if pergunta:
            mensagens.append({'role': 'user', 'content': pergunta})
            with st.spinner("Pensando..."):
                resposta = conversar_com_assistente(
                    cliente_ia, mensagens, gerenciador.carregar_frotas(),
                    gerenciador.carregar_visitas())
            mensagens.append({'role': 'assistant', 'content': resposta})
            st.rerun()
