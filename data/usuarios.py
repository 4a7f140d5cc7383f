"""
Cadastro de usuários, redefinição de senha e solicitações de acesso.

As senhas ficam em texto puro, como no sistema de origem.
"""

from dataclasses import dataclass, replace
from typing import NamedTuple, Optional

from core.modelos import agora_ms
from data.auditoria import AcaoAuditada, RegistroAtividades
from data.config import ADMIN_IMUTAVEL, CONFIGURACOES, USUARIOS_PADRAO
from data.logging_config import get_logger

logger = get_logger(__name__)

CHAVES = CONFIGURACOES['armazenamento']
PAPEIS = ('SUPER_ADMIN', 'EDITOR', 'VIEWER')
SITUACOES = ('ACTIVE', 'BLOCKED')


@dataclass(frozen=True)
class Usuario:
    name: str
    password_plaintext: str
    role: str = 'EDITOR'
    status: str = 'ACTIVE'

    @classmethod
    def de_dict(cls, dados):
        return cls(
            name=dados['name'],
            password_plaintext=dados.get('password_plaintext', ''),
            role=dados.get('role') or 'EDITOR',
            status=dados.get('status') or 'ACTIVE',
        )

    def para_dict(self):
        return {
            'name': self.name,
            'password_plaintext': self.password_plaintext,
            'role': self.role,
            'status': self.status,
        }


class Resultado(NamedTuple):
    sucesso: bool
    mensagem: str
    usuario: Optional[Usuario] = None


def _nome_solicitado(pedido):
    """Usuário que seria gerado para a solicitação, ou None se faltar NP e gestor"""
    primeiro_nome = (pedido.get('fullName') or '').strip().split(' ')[0]
    if not primeiro_nome:
        return None
    if pedido.get('managerName'):
        return primeiro_nome.lower()
    if pedido.get('npNumber'):
        return (primeiro_nome + pedido['npNumber']).lower()
    return None


class GerenciadorUsuarios:
    def __init__(self, armazenamento, atividades=None, relogio=agora_ms):
        self.armazenamento = armazenamento
        self.atividades = atividades or RegistroAtividades(armazenamento, relogio=relogio)
        self.relogio = relogio

    def inicializar(self):
        """Cria os administradores padrão na primeira execução"""
        if not self.armazenamento.existe(CHAVES['usuarios']):
            self.armazenamento.gravar(CHAVES['usuarios'], USUARIOS_PADRAO)
            logger.info("Usuários padrão criados")

    # ── Usuários ──────────────────────────────────────────────────────────

    def listar(self):
        return [Usuario.de_dict(u) for u in self.armazenamento.ler(CHAVES['usuarios'], [])]

    def _salvar(self, usuarios):
        self.armazenamento.gravar(CHAVES['usuarios'], [u.para_dict() for u in usuarios])

    def obter(self, nome):
        return next((u for u in self.listar() if u.name == nome), None)

    def autenticar(self, nome, senha):
        nome = (nome or '').strip()
        usuario = next((u for u in self.listar()
                        if u.name.lower() == nome.lower() and u.password_plaintext == senha), None)
        if usuario is None:
            return Resultado(False, "Nome de usuário ou senha incorretos.")
        if usuario.status == 'BLOCKED':
            return Resultado(False, "Este usuário está bloqueado. Contate um administrador.")
        self.atividades.registrar(usuario.name, AcaoAuditada.LOGIN, 'Usuário realizou login.')
        return Resultado(True, f"Bem-vindo, {usuario.name}!", usuario)

    def encerrar_sessao(self, nome):
        self.atividades.registrar(nome, AcaoAuditada.LOGOUT, 'Usuário realizou logout.')

    def registrar(self, nome, senha, papel='EDITOR', ator=None):
        nome = (nome or '').strip()
        if not nome or not senha:
            return Resultado(False, "Usuário e senha são obrigatórios.")
        if papel not in PAPEIS:
            return Resultado(False, f"Permissão inválida: {papel}")
        usuarios = self.listar()
        if any(u.name.lower() == nome.lower() for u in usuarios):
            return Resultado(False, "Este nome de usuário já existe.")
        novo = Usuario(nome, senha, papel, 'ACTIVE')
        self._salvar(usuarios + [novo])
        self.atividades.registrar(ator or 'SUPER_ADMIN', AcaoAuditada.CREATE,
                                  f"Criou o usuário {nome} com a permissão {papel}.")
        return Resultado(True, f"Usuário {nome} criado.", novo)

    def _pode_alterar(self, alvo, ator, verbo):
        if alvo.name == ADMIN_IMUTAVEL:
            return Resultado(False, f"Este administrador não pode ser {verbo}.")
        if alvo.role == 'SUPER_ADMIN' and ator != ADMIN_IMUTAVEL:
            return Resultado(False, "Apenas o administrador principal pode alterar outros administradores.")
        return None

    def atualizar(self, nome, ator, papel=None, status=None):
        usuarios = self.listar()
        alvo = next((u for u in usuarios if u.name == nome), None)
        if alvo is None:
            return Resultado(False, "Usuário não encontrado.")
        negado = self._pode_alterar(alvo, ator, 'alterado')
        if negado:
            return negado
        if papel is not None and papel not in PAPEIS:
            return Resultado(False, f"Permissão inválida: {papel}")
        if status is not None and status not in SITUACOES:
            return Resultado(False, f"Situação inválida: {status}")

        atualizado = replace(alvo, role=papel or alvo.role, status=status or alvo.status)
        self._salvar([atualizado if u.name == nome else u for u in usuarios])
        self.atividades.registrar(ator or 'SUPER_ADMIN', AcaoAuditada.UPDATE,
                                  f"Atualizou o usuário {nome}.")
        return Resultado(True, f"Usuário {nome} foi atualizado.", atualizado)

    def excluir(self, nome, ator):
        usuarios = self.listar()
        alvo = next((u for u in usuarios if u.name == nome), None)
        if alvo is None:
            return Resultado(False, "Usuário não encontrado.")
        negado = self._pode_alterar(alvo, ator, 'removido')
        if negado:
            return negado
        self._salvar([u for u in usuarios if u.name != nome])
        self.atividades.registrar(ator or 'SUPER_ADMIN', AcaoAuditada.DELETE,
                                  f"Removeu o usuário {nome}.")
        return Resultado(True, f"Usuário {nome} foi removido.")

    # ── Redefinição de senha ──────────────────────────────────────────────

    def redefinicoes_pendentes(self):
        return self.armazenamento.ler(CHAVES['redefinicoes'], [])

    def solicitar_redefinicao(self, nome, nova_senha):
        usuario = next((u for u in self.listar()
                        if u.name.lower() == (nome or '').strip().lower()), None)
        if usuario is None:
            return Resultado(False, "Usuário não encontrado.")
        pedidos = [p for p in self.redefinicoes_pendentes()
                   if p['username'].lower() != usuario.name.lower()]
        pedidos.append({
            'username': usuario.name,
            'newPassword_plaintext': nova_senha,
            'requestedAt': self.relogio(),
        })
        self.armazenamento.gravar(CHAVES['redefinicoes'], pedidos)
        return Resultado(True, "Sua solicitação de redefinição de senha foi enviada para um administrador.")

    def aprovar_redefinicao(self, nome, ator):
        pedidos = self.redefinicoes_pendentes()
        pedido = next((p for p in pedidos if p['username'] == nome), None)
        if pedido is None:
            return Resultado(False, "Solicitação de redefinição não encontrada.")
        usuarios = self.listar()
        if not any(u.name == nome for u in usuarios):
            return Resultado(False, "Usuário não encontrado para atualizar.")

        self._salvar([replace(u, password_plaintext=pedido['newPassword_plaintext'])
                      if u.name == nome else u for u in usuarios])
        self.armazenamento.gravar(CHAVES['redefinicoes'],
                                  [p for p in pedidos if p['username'] != nome])
        self.atividades.registrar(ator or 'SUPER_ADMIN', AcaoAuditada.UPDATE,
                                  f"Aprovou redefinição de senha para {nome}.")
        return Resultado(True, f"A senha do usuário {nome} foi redefinida com sucesso.")

    def negar_redefinicao(self, nome, ator):
        pedidos = self.redefinicoes_pendentes()
        if not any(p['username'] == nome for p in pedidos):
            return Resultado(False, "Solicitação de redefinição não encontrada.")
        self.armazenamento.gravar(CHAVES['redefinicoes'],
                                  [p for p in pedidos if p['username'] != nome])
        self.atividades.registrar(ator or 'SUPER_ADMIN', AcaoAuditada.UPDATE,
                                  f"Negou redefinição de senha para {nome}.")
        return Resultado(True, f"A solicitação de redefinição de senha para {nome} foi negada.")

    # ── Solicitações de acesso ────────────────────────────────────────────

    def solicitacoes_acesso(self):
        return self.armazenamento.ler(CHAVES['acessos'], [])

    def solicitar_acesso(self, dados):
        """
        Registra um pedido de acesso pendente.

        O usuário gerado é o primeiro nome (com gestor) ou primeiro nome + NP;
        pedidos duplicados, exceto os negados, são recusados.
        """
        nome = _nome_solicitado(dados)
        if not (dados.get('fullName') or '').strip():
            return Resultado(False, "Por favor, insira um nome completo válido.")
        if nome is None:
            return Resultado(False, "É necessário fornecer NP ou nome do gestor.")
        if any(u.name.lower() == nome for u in self.listar()):
            return Resultado(False, "Já existe um usuário ativo com estas informações.")

        pedidos = self.solicitacoes_acesso()
        if any(p.get('status') != 'DENIED' and _nome_solicitado(p) == nome for p in pedidos):
            return Resultado(False, "Já existe uma solicitação pendente ou aprovada para este usuário.")

        agora = self.relogio()
        ids = {p['id'] for p in pedidos}
        novo_id = agora
        while str(novo_id) in ids:
            novo_id += 1
        novo = {
            **dados,
            'id': str(novo_id),
            'requestedAt': agora,
            'status': 'PENDING',
        }
        self.armazenamento.gravar(CHAVES['acessos'], [novo] + pedidos)
        return Resultado(True, "Sua solicitação de acesso foi enviada para um administrador.")

    def aprovar_acesso(self, pedido_id, papel, ator):
        pedidos = self.solicitacoes_acesso()
        indice = next((i for i, p in enumerate(pedidos) if p['id'] == pedido_id), None)
        if indice is None:
            return Resultado(False, "Solicitação não encontrada.")

        pedido = pedidos[indice]
        nome = _nome_solicitado(pedido)
        if nome is None:
            return Resultado(False, "A solicitação não contém NP ou nome de gestor para criar as credenciais.")
        if pedido.get('managerName'):
            senha = f"{nome}123"
        else:
            senha = pedido['npNumber'].lower()

        criado = self.registrar(nome, senha, papel, ator)
        if not criado.sucesso:
            return criado

        pedidos[indice] = {
            **pedido,
            'status': 'APPROVED',
            'generatedUsername': nome,
            'generatedPassword': senha,
            'assignedRole': papel,
        }
        self.armazenamento.gravar(CHAVES['acessos'], pedidos)
        self.atividades.registrar(ator or 'SUPER_ADMIN', AcaoAuditada.CREATE,
                                  f"Aprovou acesso e criou o usuário {nome}.")
        return Resultado(True, f"Usuário {nome} foi criado com a permissão {papel}.", criado.usuario)

    def negar_acesso(self, pedido_id, ator):
        pedidos = self.solicitacoes_acesso()
        indice = next((i for i, p in enumerate(pedidos) if p['id'] == pedido_id), None)
        if indice is None:
            return Resultado(False, "Solicitação não encontrada.")
        pedidos[indice] = {**pedidos[indice], 'status': 'DENIED'}
        self.armazenamento.gravar(CHAVES['acessos'], pedidos)
        self.atividades.registrar(ator or 'SUPER_ADMIN', AcaoAuditada.DELETE,
                                  f"Negou a solicitação de acesso de {pedidos[indice]['fullName']}.")
        return Resultado(True, f"A solicitação de acesso de {pedidos[indice]['fullName']} foi negada.")
