# painel.py
import streamlit as st

from components.auth import AuthManager
from components.interface import ComponentesInterface
from core.assistente import ClienteTextoIA
from data.auditoria import AcaoAuditada, RegistroAtividades
from data.config import DB_FILE
from data.db import criar_engine
from data.logging_config import configurar_logging, get_logger
from data.manager import ArmazenamentoChaveValor, GerenciadorDados
from data.usuarios import GerenciadorUsuarios
from modules.administrativo import ModuloAdministrativo
from modules.frotas import ModuloFrotas
from modules.monitor import ModuloMonitor
from modules.relatorios import ModuloRelatorios
from modules.visitas import ModuloVisitas

logger = get_logger(__name__)


@st.cache_resource
def inicializar_servicos():
    """Recursos compartilhados entre as sessões do servidor"""
    configurar_logging()
    armazenamento = ArmazenamentoChaveValor(criar_engine(DB_FILE))
    atividades = RegistroAtividades(armazenamento)
    usuarios = GerenciadorUsuarios(armazenamento, atividades)
    usuarios.inicializar()
    logger.info(f"Carretômetro iniciado com o banco {DB_FILE}")
    return {
        'dados': GerenciadorDados(armazenamento, atividades),
        'usuarios': usuarios,
        'atividades': atividades,
        'ia': ClienteTextoIA(),
    }


def inicializar_estado():
    defaults = {
        'logged_in': False,
        'user': None,
        'user_role': None,
        'modo_atual': None,
        'feedback': None
    }
    for key, value in defaults.items():
        st.session_state.setdefault(key, value)


def exibir_login(auth, usuarios):
    with st.sidebar:
        st.title("🔒 Login")
        username = st.text_input("Usuário").strip()
        password = st.text_input("Senha", type="password")

        if st.button("Acessar"):
            sucesso, mensagem = auth.login(username, password)
            if sucesso:
                st.rerun()
            else:
                st.error(mensagem)

    ComponentesInterface.exibir_cabecalho()
    aba_senha, aba_acesso = st.tabs(["🔑 Esqueci minha senha", "📝 Solicitar acesso"])
    with aba_senha:
        with st.form("redefinir_senha", clear_on_submit=True):
            nome = st.text_input("Usuário")
            nova = st.text_input("Nova senha", type="password")
            if st.form_submit_button("Enviar solicitação"):
                resultado = usuarios.solicitar_redefinicao(nome.strip(), nova)
                (st.success if resultado.sucesso else st.error)(resultado.mensagem)
    with aba_acesso:
        with st.form("solicitar_acesso", clear_on_submit=True):
            nome_completo = st.text_input("Nome completo*")
            colunas = st.columns(2)
            np_numero = colunas[0].text_input("NP")
            gestor = colunas[1].text_input("Nome do gestor")
            motivo = st.text_area("Motivo")
            if st.form_submit_button("Solicitar"):
                resultado = usuarios.solicitar_acesso({
                    'fullName': nome_completo.strip(),
                    'npNumber': np_numero.strip() or None,
                    'managerName': gestor.strip() or None,
                    'reason': motivo.strip() or None,
                })
                (st.success if resultado.sucesso else st.error)(resultado.mensagem)


def main():
    ComponentesInterface.configurar_pagina()
    servicos = inicializar_servicos()
    inicializar_estado()

    auth = AuthManager(servicos['usuarios'])

    # Restaura a sessão pelo token
    if not st.session_state.get('logged_in'):
        auth.validate_token()

    if not st.session_state.get('logged_in'):
        exibir_login(auth, servicos['usuarios'])
        return

    # Interface principal
    with st.sidebar:
        st.title(f"👤 {st.session_state.user}")
        st.caption(st.session_state.user_role)
        if st.button("🚪 Logout"):
            auth.logout()
            st.rerun()

    ComponentesInterface.exibir_cabecalho()
    controles = ComponentesInterface.criar_painel_controle()
    if controles['modo_operacao'] != st.session_state.modo_atual:
        if st.session_state.modo_atual is not None:
            servicos['atividades'].registrar(
                st.session_state.user, AcaoAuditada.NAVIGATION,
                f"Navegou para a aba: {controles['modo_operacao']}")
        st.session_state.modo_atual = controles['modo_operacao']

    dados = servicos['dados']
    ia = servicos['ia']
    modulos = {
        'Monitor de Tempo': lambda: ModuloMonitor.exibir_painel(dados),
        'Visitas': lambda: ModuloVisitas.exibir_painel(dados),
        'Nova Visita': lambda: ModuloVisitas.exibir_nova_visita(dados),
        'Frotas': lambda: ModuloFrotas.exibir_painel(dados, ia),
        'Relatórios': lambda: ModuloRelatorios.exibir_painel(dados, ia),
        'Administrativo': lambda: ModuloAdministrativo.exibir_painel(
            servicos['usuarios'], servicos['atividades']),
    }

    modulos[st.session_state.modo_atual]()


if __name__ == '__main__':
    main()
