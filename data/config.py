import os
from pathlib import Path

from dotenv import load_dotenv

# .env.local tem precedência sobre .env
load_dotenv('.env.local' if os.path.exists('.env.local') else '.env')

SECRET_KEY_FILE = Path(os.getenv('CARRETOMETRO_SECRET_FILE', '.secret_key'))
DB_FILE = os.getenv('CARRETOMETRO_DB', 'carretometro.db')
LOG_LEVEL = os.getenv('CARRETOMETRO_LOG_LEVEL', 'INFO')

IA = {
    'url': os.getenv('CARRETOMETRO_IA_URL', ''),
    'chave': os.getenv('CARRETOMETRO_IA_KEY', ''),
    'modelo': os.getenv('CARRETOMETRO_IA_MODELO', 'gemini-2.0-flash'),
    'timeout': int(os.getenv('CARRETOMETRO_IA_TIMEOUT', '60')),
}

# Status do ciclo de vida da visita
EM_FILA = 'Em Fila'
EM_MANUTENCAO = 'Em Manutenção'
AGUARDANDO_PECA = 'Aguardando Peça'
MOVIMENTACAO = 'Movimentação'
FINALIZADO = 'Finalizado'

CALIBRAGEM = 'Calibragem'

CONFIGURACOES = {
    'interface': {
        'titulo_pagina': 'Carretômetro',
        'icone_pagina': '🚛',
        'layout': 'wide',
        'intervalo_monitor': 1.5,
        'intervalo_cronometro': 1,
        'tipos_imagem': ['png', 'jpg', 'jpeg', 'webp'],
    },
    'oficinas': ['Monte Líbano', 'Vale das Carretas', 'CMC'],
    'tipos_ordem': ['Preventiva', 'Corretiva', 'Preditiva', 'Calibragem', 'Inspeção'],
    'status': [EM_FILA, EM_MANUTENCAO, AGUARDANDO_PECA, MOVIMENTACAO, FINALIZADO],
    'equipamento_padrao': 'Não especificado',
    # Metas de SLA em segundos
    'sla': {
        'fila': 10 * 3600,
        'corretiva': 10 * 3600,
        'preventiva': 20 * 3600,
        'inspecao': 2 * 3600,
        'calibragem': 1 * 3600,
    },
    'armazenamento': {
        'visitas': 'carretometro-visits',
        'frotas': 'carretometro-fleets',
        'atividades': 'carretometro-audit-log',
        'usuarios': 'app-users',
        'redefinicoes': 'app-password-requests',
        'acessos': 'app-access-requests',
    },
    'auditoria': {
        'max_registros': 500,
    },
    'sessao': {
        'expiracao_segundos': 5 * 24 * 60 * 60,
        'cookie': 'carretometro_auth',
    },
}

ADMIN_IMUTAVEL = 'quemoel457359'

# Usuários criados na primeira execução (senhas em texto puro, como no sistema legado)
USUARIOS_PADRAO = [
    {'name': 'admin01', 'password_plaintext': 'admin01', 'role': 'SUPER_ADMIN', 'status': 'ACTIVE'},
    {'name': 'Quemoel', 'password_plaintext': 'quemoel01', 'role': 'SUPER_ADMIN', 'status': 'ACTIVE'},
    {'name': ADMIN_IMUTAVEL, 'password_plaintext': 'quemoel01', 'role': 'SUPER_ADMIN', 'status': 'ACTIVE'},
]

# Usuários autorizados a excluir visitas
EXCLUSAO_VISITAS = ['admin01', ADMIN_IMUTAVEL]

PERMISSOES = {
    'SUPER_ADMIN': [
        'Monitor de Tempo',
        'Visitas',
        'Nova Visita',
        'Frotas',
        'Relatórios',
        'Administrativo'
    ],
    'EDITOR': [
        'Monitor de Tempo',
        'Visitas',
        'Nova Visita',
        'Frotas',
        'Relatórios'
    ],
    'VIEWER': [
        'Monitor de Tempo',
        'Visitas',
        'Frotas'
    ]
}

# Papéis que podem criar e alterar dados
PAPEIS_EDICAO = ['SUPER_ADMIN', 'EDITOR']


def carregar_secret_key():
    """Lê a chave de assinatura da sessão, gerando-a na primeira execução"""
    if not SECRET_KEY_FILE.exists():
        SECRET_KEY_FILE.write_text(os.urandom(32).hex())
    return SECRET_KEY_FILE.read_text().strip().encode()
