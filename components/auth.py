import time

import streamlit as st
from itsdangerous import BadSignature, URLSafeSerializer

from data.config import CONFIGURACOES, carregar_secret_key
from data.logging_config import get_logger

logger = get_logger(__name__)


class AuthManager:
    """Sessão do usuário: token assinado na URL + st.session_state"""

    def __init__(self, usuarios, secret_key=None):
        self.usuarios = usuarios
        self.serializer = URLSafeSerializer(secret_key or carregar_secret_key())
        self.cookie_name = CONFIGURACOES['sessao']['cookie']
        self.expiracao = CONFIGURACOES['sessao']['expiracao_segundos']

    def _get_token(self):
        return st.query_params.get(self.cookie_name)

    def _set_token(self, valor):
        if valor:
            st.query_params[self.cookie_name] = valor
        elif self.cookie_name in st.query_params:
            del st.query_params[self.cookie_name]

    def _generate_token(self, username):
        """Token assinado com validade de 5 dias"""
        payload = {
            'user': username,
            'exp': time.time() + self.expiracao
        }
        return self.serializer.dumps(payload)

    def ler_token(self, token):
        """Nome do usuário do token, ou None se inválido/expirado"""
        if not token:
            return None
        try:
            payload = self.serializer.loads(token)
        except BadSignature:
            logger.warning("Token de sessão com assinatura inválida")
            return None
        if payload.get('exp', 0) <= time.time():
            return None
        return payload.get('user')

    def _iniciar_sessao(self, usuario):
        st.session_state.update({
            'logged_in': True,
            'user': usuario.name,
            'user_role': usuario.role,
        })

    def validate_token(self):
        """Restaura a sessão a partir do token, se o usuário ainda estiver ativo"""
        nome = self.ler_token(self._get_token())
        if not nome:
            return False
        usuario = self.usuarios.obter(nome)
        if usuario is None or usuario.status == 'BLOCKED':
            self._set_token('')
            return False
        self._iniciar_sessao(usuario)
        return True

    def login(self, username, password):
        """Retorna (sucesso, mensagem)"""
        resultado = self.usuarios.autenticar(username, password)
        if resultado.sucesso:
            self._iniciar_sessao(resultado.usuario)
            self._set_token(self._generate_token(resultado.usuario.name))
        return resultado.sucesso, resultado.mensagem

    def logout(self):
        """Remove o token e limpa a sessão"""
        usuario = st.session_state.get('user')
        if usuario:
            self.usuarios.encerrar_sessao(usuario)
        self._set_token('')
        st.session_state.clear()
