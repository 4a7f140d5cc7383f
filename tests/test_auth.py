import time

from components.auth import AuthManager


def test_token_de_sessao(usuarios):
    auth = AuthManager(usuarios, secret_key=b'segredo')
    token = auth._generate_token('admin01')
    assert auth.ler_token(token) == 'admin01'


def test_token_adulterado(usuarios):
    auth = AuthManager(usuarios, secret_key=b'segredo')
    token = AuthManager(usuarios, secret_key=b'outro')._generate_token('admin01')
    assert auth.ler_token(token) is None
    assert auth.ler_token('') is None


def test_token_expirado(usuarios, monkeypatch):
    auth = AuthManager(usuarios, secret_key=b'segredo')
    token = auth._generate_token('admin01')
    agora = time.time()
    monkeypatch.setattr(time, 'time', lambda: agora + auth.expiracao + 1)
    assert auth.ler_token(token) is None
