from sqlalchemy.exc import OperationalError

from data.auditoria import Atividade, RegistroAtividades


class ArmazenamentoQuebrado:
    def ler(self, chave, padrao=None):
        return padrao

    def gravar(self, chave, valor):
        raise OperationalError("UPDATE armazenamento", {}, Exception("disk I/O error"))


def test_mais_recente_primeiro(atividades, relogio):
    atividades.registrar('admin01', 'LOGIN', 'Usuário realizou login.')
    relogio.avancar(10)
    atividades.registrar('admin01', 'NAVIGATION', 'Navegou para a aba: Visitas')

    registros = atividades.listar()
    assert [a.action for a in registros] == ['NAVIGATION', 'LOGIN']
    assert registros[0].timestamp == relogio()


def test_ids_unicos_no_mesmo_instante(atividades):
    for _ in range(3):
        atividades.registrar('admin01', 'UPDATE', 'x')
    ids = [a.id for a in atividades.listar()]
    assert len(set(ids)) == 3
    assert ids == sorted(ids, reverse=True)


def test_limite_de_500_registros(atividades, relogio):
    for i in range(505):
        relogio.avancar(1)
        atividades.registrar('admin01', 'UPDATE', f'evento {i}')

    registros = atividades.listar()
    assert len(registros) == 500
    assert registros[0].details == 'evento 504'
    assert registros[-1].details == 'evento 5'


def test_limite_configuravel(armazenamento, relogio):
    registro = RegistroAtividades(armazenamento, limite=2, relogio=relogio)
    for i in range(4):
        registro.registrar('u', 'CREATE', str(i))
    assert [a.details for a in registro.listar()] == ['3', '2']


def test_falha_de_gravacao_nao_interrompe(relogio):
    registro = RegistroAtividades(ArmazenamentoQuebrado(), relogio=relogio)
    assert registro.registrar('admin01', 'LOGIN', 'Usuário realizou login.') is None


def test_filtrar(atividades):
    atividades.registrar('admin01', 'LOGIN', 'a')
    atividades.registrar('Quemoel', 'LOGIN', 'b')
    atividades.registrar('admin01', 'DELETE', 'c')
    assert [a.details for a in atividades.filtrar(usuario='admin01')] == ['c', 'a']
    assert [a.details for a in atividades.filtrar(acao='LOGIN')] == ['b', 'a']


def test_serializacao():
    atividade = Atividade(1, 2, 'u', 'CREATE', 'd')
    assert Atividade.de_dict(atividade.para_dict()) == atividade
