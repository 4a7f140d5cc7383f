import pandas as pd
import streamlit as st

from components.interface import ComponentesInterface
from core.assistente import TIPOS_ANALISE, analisar_frota, conversar_com_frota, gerar_sugestoes_proativas


class ModuloFrotas:
    """Frotas cadastradas, histórico de visitas e análises de IA por veículo"""

    @classmethod
    def exibir_painel(cls, gerenciador, cliente_ia):
        st.subheader("Frotas")
        ComponentesInterface.exibir_notificacao()

        frotas = gerenciador.carregar_frotas()
        if not frotas:
            st.info("Nenhuma frota cadastrada. As frotas são criadas ao registrar a primeira visita.")
            return

        cls._tabela_frotas(frotas, gerenciador.resumo_frotas())
        frota_id = st.selectbox("Selecionar frota", [f.id for f in frotas])
        frota = next(f for f in frotas if f.id == frota_id)
        historico = gerenciador.historico_frota(frota_id)

        aba_historico, aba_analise, aba_chat = st.tabs([
            "🕰️ Histórico",
            "📊 Análise de IA",
            "💬 Conversar"
        ])
        with aba_historico:
            cls._exibir_historico(historico)
            if ComponentesInterface.pode_editar():
                cls._botao_exclusao(gerenciador, frota)
        with aba_analise:
            cls._exibir_analise(cliente_ia, gerenciador, frota, historico)
        with aba_chat:
            cls._exibir_chat(cliente_ia, frota, historico)

    @staticmethod
    def _tabela_frotas(frotas, resumo):
        st.dataframe(pd.DataFrame([{
            'Frota': f.id,
            'Placa': f.plate,
            'Equipamento': f.equipment_type,
            'Transportadora': f.carrier,
            'Visitas': resumo.get(f.id, {}).get('total_visitas', 0),
            'Última chegada': ComponentesInterface.formatar_data(
                resumo.get(f.id, {}).get('ultima_chegada')),
        } for f in frotas]), use_container_width=True, hide_index=True)

    @staticmethod
    def _exibir_historico(historico):
        if not historico:
            st.info("Nenhuma visita registrada para esta frota")
            return
        st.dataframe(pd.DataFrame([{
            'Visita': v.id,
            'Status': v.status,
            'Tipo de Ordem': ', '.join(v.order_type),
            'Oficina': v.workshop or '—',
            'Chegada': ComponentesInterface.formatar_data(v.arrival_timestamp),
            'Finalização': ComponentesInterface.formatar_data(v.finish_timestamp),
            'Serviços concluídos': len(v.service_history),
        } for v in historico]), use_container_width=True, hide_index=True)

    @staticmethod
    def _botao_exclusao(gerenciador, frota):
        if st.button("🗑️ Excluir frota", key=f"excluir_frota_{frota.id}"):
            resultado = gerenciador.excluir_frota(frota.id, st.session_state.user)
            if resultado.has_visits:
                st.error("Não é possível excluir uma frota com visitas registradas.")
                return
            if resultado.success:
                ComponentesInterface.notificar('sucesso', f"Frota {frota.id} excluída")
            else:
                ComponentesInterface.notificar('erro', f"Frota {frota.id} não encontrada")
            st.rerun()

    @staticmethod
    def _exibir_analise(cliente_ia, gerenciador, frota, historico):
        tipo = st.radio("Tipo de análise", list(TIPOS_ANALISE), format_func=TIPOS_ANALISE.get,
                        horizontal=True, key=f"tipo_analise_{frota.id}")
        colunas = st.columns(2)
        if colunas[0].button("Gerar análise", key=f"analise_{frota.id}", use_container_width=True):
            with st.spinner("Analisando histórico..."):
                st.session_state[f"analise_{frota.id}"] = analisar_frota(
                    cliente_ia, frota.id, historico, tipo)
        if colunas[1].button("Sugestões proativas", key=f"sugestoes_{frota.id}",
                             use_container_width=True):
            with st.spinner("Gerando sugestões..."):
                st.session_state[f"analise_{frota.id}"] = gerar_sugestoes_proativas(
                    cliente_ia, frota.id, gerenciador.carregar_frotas(),
                    gerenciador.carregar_visitas())
        if st.session_state.get(f"analise_{frota.id}"):
            st.markdown(st.session_state[f"analise_{frota.id}"])

    @staticmethod
    def _exibir_chat(cliente_ia, frota, historico):
        chave = f"chat_{frota.id}"
        mensagens = st.session_state.setdefault(chave, [])
        for mensagem in mensagens:
            with st.chat_message(mensagem['role']):
                st.markdown(mensagem['content'])

        pergunta = st.chat_input(f"Pergunte sobre a frota {frota.id}", key=f"entrada_{chave}")
        if pergunta:
            mensagens.append({'role': 'user', 'content': pergunta})
            with st.spinner("Consultando histórico..."):
                resposta = conversar_com_frota(cliente_ia, frota.id, historico, pergunta)
            mensagens.append({'role': 'assistant', 'content': resposta})
            st.rerun()
