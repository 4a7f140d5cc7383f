import pandas as pd
import streamlit as st

from components.interface import ComponentesInterface
from data.usuarios import PAPEIS, SITUACOES

ACOES = ['Todas', 'LOGIN', 'LOGOUT', 'CREATE', 'UPDATE', 'DELETE', 'NAVIGATION']


class ModuloAdministrativo:
    """Gestão de usuários, solicitações e registro de atividades"""

    @classmethod
    def exibir_painel(cls, usuarios, atividades):
        st.subheader('Administrativo')
        ComponentesInterface.exibir_notificacao()
        cls._exibir_metricas(usuarios)

        aba_usuarios, aba_solicitacoes, aba_atividades = st.tabs([
            "👥 Usuários",
            "📨 Solicitações",
            "📜 Atividades"
        ])
        with aba_usuarios:
            cls._formulario_cadastro(usuarios)
            cls._gerenciar_usuarios(usuarios)
        with aba_solicitacoes:
            cls._redefinicoes_senha(usuarios)
            st.divider()
            cls._solicitacoes_acesso(usuarios)
        with aba_atividades:
            cls._registro_atividades(atividades)

    @staticmethod
    def _exibir_metricas(usuarios):
        lista = usuarios.listar()
        pendentes = [p for p in usuarios.solicitacoes_acesso() if p.get('status') == 'PENDING']
        with st.expander('📊 Visão Geral', expanded=True):
            colunas = st.columns(3)
            metricas = {
                'Usuários': len(lista),
                'Bloqueados': len([u for u in lista if u.status == 'BLOCKED']),
                'Solicitações Pendentes': len(pendentes) + len(usuarios.redefinicoes_pendentes()),
            }
            for col, (rotulo, valor) in zip(colunas, metricas.items()):
                col.metric(rotulo, valor)

    @staticmethod
    def _resultado(resultado):
        ComponentesInterface.notificar('sucesso' if resultado.sucesso else 'erro', resultado.mensagem)
        st.rerun()

    @classmethod
    def _formulario_cadastro(cls, usuarios):
        with st.form("Novo Usuário", clear_on_submit=True):
            st.markdown("**Novo usuário**")
            colunas = st.columns(3)
            nome = colunas[0].text_input('Usuário*')
            senha = colunas[1].text_input('Senha*', type='password')
            papel = colunas[2].selectbox('Permissão', PAPEIS, index=PAPEIS.index('EDITOR'))
            if st.form_submit_button('Cadastrar'):
                cls._resultado(usuarios.registrar(nome, senha, papel, st.session_state.user))

    @classmethod
    def _gerenciar_usuarios(cls, usuarios):
        st.divider()
        lista = usuarios.listar()
        st.dataframe(pd.DataFrame([{
            'Usuário': u.name,
            'Permissão': u.role,
            'Situação': 'Ativo' if u.status == 'ACTIVE' else 'Bloqueado',
        } for u in lista]), use_container_width=True, hide_index=True)

        nome = st.selectbox("Editar usuário", [u.name for u in lista])
        alvo = next((u for u in lista if u.name == nome), None)
        if alvo is None:
            return
        colunas = st.columns(4)
        papel = colunas[0].selectbox("Permissão", PAPEIS, index=PAPEIS.index(alvo.role),
                                     key=f"papel_{alvo.name}")
        situacao = colunas[1].selectbox("Situação", SITUACOES, index=SITUACOES.index(alvo.status),
                                        key=f"situacao_{alvo.name}")
        if colunas[2].button("💾 Salvar", key=f"salvar_{alvo.name}", use_container_width=True):
            cls._resultado(usuarios.atualizar(alvo.name, st.session_state.user,
                                              papel=papel, status=situacao))
        if colunas[3].button("🗑️ Remover", key=f"remover_{alvo.name}", use_container_width=True):
            cls._resultado(usuarios.excluir(alvo.name, st.session_state.user))

    @classmethod
    def _redefinicoes_senha(cls, usuarios):
        st.markdown("**Redefinições de senha**")
        pedidos = usuarios.redefinicoes_pendentes()
        if not pedidos:
            st.info("Nenhuma solicitação de redefinição pendente")
            return
        for pedido in pedidos:
            colunas = st.columns([3, 1, 1])
            colunas[0].markdown(
                f"**{pedido['username']}** · solicitado em "
                f"{ComponentesInterface.formatar_data(pedido.get('requestedAt'))}")
            if colunas[1].button("✅ Aprovar", key=f"aprovar_red_{pedido['username']}"):
                cls._resultado(usuarios.aprovar_redefinicao(pedido['username'], st.session_state.user))
            if colunas[2].button("❌ Negar", key=f"negar_red_{pedido['username']}"):
                cls._resultado(usuarios.negar_redefinicao(pedido['username'], st.session_state.user))

    @classmethod
    def _solicitacoes_acesso(cls, usuarios):
        st.markdown("**Solicitações de acesso**")
        pedidos = [p for p in usuarios.solicitacoes_acesso() if p.get('status') == 'PENDING']
        if not pedidos:
            st.info("Nenhuma solicitação de acesso pendente")
            return
        for pedido in pedidos:
            with st.container(border=True):
                colunas = st.columns([3, 1, 1, 1])
                colunas[0].markdown(
                    f"**{pedido['fullName']}**  \n"
                    f"NP: {pedido.get('npNumber') or '—'} · Gestor: {pedido.get('managerName') or '—'}  \n"
                    f"{pedido.get('reason') or ''}")
                papel = colunas[1].selectbox("Permissão", PAPEIS, index=PAPEIS.index('VIEWER'),
                                             key=f"papel_acesso_{pedido['id']}")
                if colunas[2].button("✅ Aprovar", key=f"aprovar_acesso_{pedido['id']}"):
                    cls._resultado(usuarios.aprovar_acesso(pedido['id'], papel, st.session_state.user))
                if colunas[3].button("❌ Negar", key=f"negar_acesso_{pedido['id']}"):
                    cls._resultado(usuarios.negar_acesso(pedido['id'], st.session_state.user))

    @staticmethod
    def _registro_atividades(atividades):
        colunas = st.columns(2)
        usuario = colunas[0].text_input("Filtrar por usuário").strip()
        acao = colunas[1].selectbox("Ação", ACOES)
        registros = atividades.filtrar(usuario=usuario or None,
                                       acao=None if acao == 'Todas' else acao)
        if not registros:
            st.info("Nenhuma atividade registrada")
            return
        st.dataframe(pd.DataFrame([{
            'Data': ComponentesInterface.formatar_data(a.timestamp),
            'Usuário': a.user,
            'Ação': a.action,
            'Detalhes': a.details,
        } for a in registros]), use_container_width=True, hide_index=True, height=500)
