import base64

from components.interface import ComponentesInterface


class ArquivoEnviado:
    def __init__(self, conteudo, tipo):
        self.conteudo = conteudo
        self.type = tipo

    def getvalue(self):
        return self.conteudo


def test_foto_vira_data_uri():
    uri = ComponentesInterface.imagem_para_data_uri(ArquivoEnviado(b'\x89PNG', 'image/png'))
    assert uri == 'data:image/png;base64,' + base64.b64encode(b'\x89PNG').decode()


def test_sem_foto():
    assert ComponentesInterface.imagem_para_data_uri(None) is None


def test_tipo_ausente_assume_jpeg():
    uri = ComponentesInterface.imagem_para_data_uri(ArquivoEnviado(b'abc', None))
    assert uri.startswith('data:image/jpeg;base64,')


def test_formatacao_de_tempo():
    assert ComponentesInterface.formatar_data(None) == '—'
    assert ComponentesInterface.formatar_tempo(3661) == '01:01:01'
