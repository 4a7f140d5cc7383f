import pandas as pd
import streamlit as st

from components.interface import ComponentesInterface
from core.metricas import calcular_metricas, contar_por_tipo_ordem, inicio_cronometro, tempo_decorrido
from core.modelos import agora_ms
from data.config import CONFIGURACOES, EM_FILA, EM_MANUTENCAO, AGUARDANDO_PECA

TITULOS_GRUPOS = {
    EM_FILA: "🕒 Em Fila",
    EM_MANUTENCAO: "🔧 Em Manutenção",
    AGUARDANDO_PECA: "📦 Aguardando Peça",
}


class ModuloMonitor:
    """Monitor de tempo das visitas em andamento"""

    @classmethod
    def exibir_painel(cls, gerenciador):
        st.subheader("Monitor de Tempo")
        colunas = st.columns(2)
        data_filtro = colunas[0].date_input("Data de chegada", value=None, format="DD/MM/YYYY")
        oficina = colunas[1].selectbox(
            "Oficina",
            ['all'] + CONFIGURACOES['oficinas'],
            format_func=lambda o: 'Todas' if o == 'all' else o
        )
        cls._painel_ao_vivo(gerenciador, data_filtro, oficina)

    @staticmethod
    @st.fragment(run_every=CONFIGURACOES['interface']['intervalo_monitor'])
    def _painel_ao_vivo(gerenciador, data_filtro, oficina):
        """Recalculado a cada 1,5 s enquanto a tela estiver aberta"""
        painel = calcular_metricas(gerenciador.carregar_visitas(), agora_ms(),
                                   data_filtro=data_filtro, oficina_filtro=oficina)
        ModuloMonitor._exibir_metricas(painel)
        st.divider()
        ModuloMonitor._exibir_grupos(painel)
        st.divider()
        ModuloMonitor._exibir_finalizadas(painel, data_filtro)

    @staticmethod
    def _exibir_metricas(painel):
        colunas = st.columns(3)
        for i, metrica in enumerate(painel.metricas.values()):
            with colunas[i % 3].container(border=True):
                if metrica.vazio:
                    st.metric(metrica.titulo, "—")
                    st.caption("Nenhum veículo.")
                    continue
                st.metric(metrica.titulo, ComponentesInterface.formatar_tempo(metrica.media_segundos),
                          help=f"{metrica.quantidade} veículo(s)")
                if metrica.meta_segundos:
                    st.progress(int(metrica.progresso))
                    meta = ComponentesInterface.formatar_tempo(metrica.meta_segundos)
                    if metrica.acima_sla:
                        st.caption(f"⚠️ Acima do SLA ({meta})")
                    else:
                        st.caption(f"SLA: {meta}")

    @staticmethod
    def _exibir_grupos(painel):
        if painel.sem_veiculos_em_operacao:
            st.info("🌟 Nenhum veículo em operação no momento")
            return

        agora = agora_ms()
        colunas = st.columns(len(painel.grupos))
        for coluna, (status, visitas) in zip(colunas, painel.grupos.items()):
            with coluna:
                st.markdown(f"**{TITULOS_GRUPOS[status]}** ({len(visitas)})")
                for visita in visitas:
                    decorrido = tempo_decorrido(inicio_cronometro(visita), agora)
                    with st.container(border=True):
                        st.markdown(f"**{visita.fleet_id}** · {visita.plate}")
                        st.caption(f"{', '.join(visita.order_type)} · {visita.workshop or 'Sem oficina'}")
                        st.code(ComponentesInterface.formatar_tempo(decorrido), language=None)

    @staticmethod
    def _exibir_finalizadas(painel, data_filtro):
        periodo = "na data selecionada" if data_filtro else "nas últimas 24h"
        st.metric(f"Finalizadas {periodo}", painel.quantidade_finalizadas_periodo)

        if painel.finalizadas_periodo:
            with st.expander("Ver veículos finalizados"):
                st.dataframe(pd.DataFrame([{
                    'Visita': v.id,
                    'Frota': v.fleet_id,
                    'Placa': v.plate,
                    'Tipo de Ordem': ', '.join(v.order_type),
                    'Oficina': v.workshop or '—',
                    'Finalizada em': ComponentesInterface.formatar_data(v.finish_timestamp),
                } for v in painel.finalizadas_periodo]), use_container_width=True, hide_index=True)

        contagem = contar_por_tipo_ordem(painel.todas_finalizadas)
        if contagem:
            st.markdown("**Finalizadas por tipo de ordem**")
            st.bar_chart(pd.Series(contagem, name='Visitas'))
