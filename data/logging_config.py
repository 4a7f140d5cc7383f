"""
Configuração de logging do Carretômetro.

- Console (stdout) sempre ativo
- Arquivo rotativo em logs/carretometro.log quando o diretório pode ser criado
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler

from data.config import LOG_LEVEL

_configurado = False


def configurar_logging(nivel=None, diretorio='logs'):
    """
    Configura o logger raiz uma única vez por processo.

    Streamlit reexecuta o script a cada interação; chamadas repetidas
    não duplicam handlers.
    """
    global _configurado
    if _configurado:
        return logging.getLogger()

    nivel = logging.getLevelName((nivel or LOG_LEVEL).upper())
    if not isinstance(nivel, int):
        nivel = logging.INFO

    raiz = logging.getLogger()
    raiz.setLevel(nivel)
    raiz.handlers.clear()

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(nivel)
    console.setFormatter(logging.Formatter(
        '[%(asctime)s] %(levelname)s: %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    ))
    raiz.addHandler(console)

    try:
        os.makedirs(diretorio, exist_ok=True)
        arquivo = RotatingFileHandler(
            os.path.join(diretorio, 'carretometro.log'),
            maxBytes=10485760,  # 10MB
            backupCount=5,
            encoding='utf-8'
        )
        arquivo.setLevel(logging.DEBUG)
        arquivo.setFormatter(logging.Formatter(
            '[%(asctime)s] %(levelname)s in %(module)s [%(pathname)s:%(lineno)d]: %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        ))
        raiz.addHandler(arquivo)
    except OSError as e:
        raiz.warning(f"Não foi possível criar handler de arquivo: {e}")

    # Bibliotecas externas
    logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)
    logging.getLogger('urllib3').setLevel(logging.WARNING)
    logging.getLogger('watchdog').setLevel(logging.WARNING)

    _configurado = True
    raiz.info(f"Logging configurado (nível {logging.getLevelName(nivel)})")
    return raiz


def get_logger(name):
    """Retorna o logger do módulo (use __name__)"""
    return logging.getLogger(name)
