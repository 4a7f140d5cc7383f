import base64
import html
from datetime import datetime
from pathlib import Path

import streamlit as st

from core.metricas import formatar_duracao
from data.config import CONFIGURACOES, PAPEIS_EDICAO, PERMISSOES


class ComponentesInterface:
    @staticmethod
    def configurar_pagina():
        st.set_page_config(
            page_title=CONFIGURACOES['interface']['titulo_pagina'],
            page_icon=CONFIGURACOES['interface']['icone_pagina'],
            layout=CONFIGURACOES['interface']['layout']
        )
        ComponentesInterface.carregar_estilos()

    @staticmethod
    def carregar_estilos():
        arquivo = Path('style.css')
        if arquivo.exists():
            st.markdown(f'<style>{arquivo.read_text(encoding="utf-8")}</style>',
                        unsafe_allow_html=True)

    @staticmethod
    def exibir_cabecalho():
        st.markdown(
            f"<div class='cabecalho'>{CONFIGURACOES['interface']['icone_pagina']} "
            f"{CONFIGURACOES['interface']['titulo_pagina']}</div>",
            unsafe_allow_html=True
        )

    @staticmethod
    def criar_painel_controle():
        """Menu lateral com as telas permitidas ao papel do usuário"""
        with st.sidebar:
            papel = st.session_state.get('user_role')
            opcoes = PERMISSOES.get(papel, [])

            if not opcoes:
                st.error("Sem permissões")
                st.stop()

            modo = st.radio('Navegação', opcoes, key='modo_navegacao')
        return {'modo_operacao': modo}

    @staticmethod
    def exibir_notificacao():
        """Exibe a notificação pendente da última ação"""
        if st.session_state.get('feedback'):
            tipo, mensagem = st.session_state.feedback
            if tipo == 'sucesso':
                st.success(mensagem, icon="✅")
            else:
                st.error(mensagem, icon="⚠️")
            del st.session_state.feedback

    @staticmethod
    def notificar(tipo, mensagem):
        """Guarda a notificação para ser exibida após o st.rerun()"""
        st.session_state.feedback = (tipo, mensagem)

    @staticmethod
    def formatar_data(ts, padrao='—'):
        if not ts:
            return padrao
        return datetime.fromtimestamp(ts / 1000).strftime('%d/%m/%Y %H:%M')

    @staticmethod
    def formatar_tempo(segundos):
        return formatar_duracao(segundos)

    @staticmethod
    def pode_editar():
        return st.session_state.get('user_role') in PAPEIS_EDICAO

    @staticmethod
    def imagem_para_data_uri(arquivo):
        """Arquivo do st.file_uploader como data URI, ou None sem arquivo"""
        if arquivo is None:
            return None
        tipo = arquivo.type or 'image/jpeg'
        conteudo = base64.b64encode(arquivo.getvalue()).decode()
        return f"data:{tipo};base64,{conteudo}"

    @staticmethod
    def exibir_imagem(data_uri, largura=320):
        if not data_uri:
            return
        st.markdown(f'<img src="{html.escape(data_uri)}" width="{largura}">',
                    unsafe_allow_html=True)
