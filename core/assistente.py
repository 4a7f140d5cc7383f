"""
core/assistente.py
Fronteira com o serviço de geração de texto (IA).

O serviço é opaco: recebe um prompt e devolve texto. As visitas são
enviadas como JSON com os nomes de campo do armazenamento. Qualquer
falha é logada e convertida em uma mensagem de desculpas para a tela;
nenhuma chamada é repetida automaticamente.
"""

import json
from datetime import datetime

import requests

from data.config import IA
from data.logging_config import get_logger

logger = get_logger(__name__)

ERRO_SUGESTOES = 'Ocorreu um erro ao gerar as sugestões. Por favor, tente novamente mais tarde.'
ERRO_CONVERSA = 'Desculpe, ocorreu um erro ao me comunicar com a IA. Por favor, tente novamente.'
ERRO_ANALISE = 'Ocorreu um erro ao gerar a análise da frota. Por favor, tente novamente mais tarde.'

TIPOS_ANALISE = {
    'FULL': 'Análise Completa',
    'SUMMARY': 'Resumo do Perfil',
    'RECURRING_ISSUES': 'Problemas Recorrentes',
    'DOWNTIME': 'Tempos de Parada',
}

_CAMPOS_DATA = (
    'arrivalTimestamp', 'maintenanceStartTimestamp', 'awaitingPartTimestamp',
    'finishTimestamp', 'boxEntryTimestamp', 'createdAt', 'updatedAt',
)


class ErroServicoIA(Exception):
    """Falha de comunicação ou resposta inválida do serviço de IA"""


class ClienteTextoIA:
    """Cliente HTTP do serviço de geração de texto: POST {model, prompt} -> {text}"""

    def __init__(self, url=None, chave=None, modelo=None, timeout=None, sessao=None):
        self.url = url if url is not None else IA['url']
        self.chave = chave if chave is not None else IA['chave']
        self.modelo = modelo or IA['modelo']
        self.timeout = timeout or IA['timeout']
        self.sessao = sessao or requests.Session()

    def gerar(self, prompt):
        if not self.url:
            raise ErroServicoIA("URL do serviço de IA não configurada (CARRETOMETRO_IA_URL)")
        headers = {'Content-Type': 'application/json'}
        if self.chave:
            headers['Authorization'] = f'Bearer {self.chave}'
        try:
            resp = self.sessao.post(
                self.url,
                json={'model': self.modelo, 'prompt': prompt},
                headers=headers,
                timeout=self.timeout
            )
            resp.raise_for_status()
            dados = resp.json()
        except (requests.RequestException, ValueError) as e:
            raise ErroServicoIA(str(e)) from e

        texto = dados.get('text') if isinstance(dados, dict) else None
        if not isinstance(texto, str):
            raise ErroServicoIA("Resposta sem campo 'text'")
        return texto


# ── Serialização ──────────────────────────────────────────────────────────────

def visitas_para_json(visitas, indent=None):
    return json.dumps([v.para_dict() for v in visitas], ensure_ascii=False, indent=indent)


def _formatar_data(ts):
    return datetime.fromtimestamp(ts / 1000).strftime('%d/%m/%Y %H:%M') if ts else None


def visita_para_ia(visita):
    """Registro da visita com as datas legíveis (dd/mm/aaaa HH:MM)"""
    dados = visita.para_dict()
    for campo in _CAMPOS_DATA:
        if campo in dados:
            dados[campo] = _formatar_data(dados[campo])
    if 'serviceHistory' in dados:
        dados['serviceHistory'] = [
            {**log,
             'startTimestamp': _formatar_data(log.get('startTimestamp')),
             'finishTimestamp': _formatar_data(log.get('finishTimestamp'))}
            for log in dados['serviceHistory']
        ]
    return dados


def _extrair_json(texto):
    """Aceita a resposta pura ou dentro de um bloco ```json"""
    texto = texto.strip()
    if texto.startswith('```'):
        texto = texto.strip('`')
        if texto.lower().startswith('json'):
            texto = texto[4:]
    return json.loads(texto)


# ── Prompts ───────────────────────────────────────────────────────────────────

_PROMPT_SUGESTOES = """Você é um especialista em manutenção de frotas. Com base nos dados históricos da frota e nas condições operacionais atuais para o veículo de ID {frota_id}, forneça sugestões de manutenção proativa para prevenir quebras e otimizar os cronogramas de manutenção.

A sua resposta deve ser em Português do Brasil.

Dados da Frota:
{dados}

Sugestões:"""

_PROMPT_RELATORIO = """Você é um analista de dados especialista em manutenção de frotas. Sua tarefa é analisar o JSON de visitas de veículos fornecido e gerar um relatório analítico estruturado.
Sempre responda em português do Brasil.

Analise os seguintes dados:
{dados}

Responda APENAS com um objeto JSON contendo:
1. "reportTitle": um título claro, como "Relatório Analítico de Visitas de Frota".
2. "summary": um parágrafo resumindo as principais descobertas.
3. "keyMetrics": {{"totalVisits": número total de visitas, "averageQueueTime": tempo médio de fila (arrivalTimestamp até maintenanceStartTimestamp), "averageMaintenanceTime": tempo médio de manutenção (maintenanceStartTimestamp até finishTimestamp)}}. Formate as durações de forma legível (ex: "1 dia, 4 horas, 30 minutos"); se o tempo for zero, use "0 minutos".
4. "visitsByOrderType": lista de {{"name", "value"}} com a contagem de visitas por orderType.
5. "visitsByWorkshop": lista de {{"name", "value"}} com a contagem de visitas por workshop.
6. "insights": até 3 padrões, anomalias ou insights acionáveis."""

_PROMPT_CONVERSA_FROTA = """Você é um especialista em auditoria de manutenção de frotas. Sua única fonte de conhecimento é o histórico de manutenção em formato JSON fornecido abaixo para o veículo com ID: {frota_id}.
Responda de forma direta e completa à pergunta do usuário, baseando-se estritamente nos dados fornecidos. Formate sua resposta de forma clara usando títulos, listas ou parágrafos curtos.

Histórico de Manutenção do Veículo {frota_id}:
{historico}

Pergunta do Usuário:
"{pergunta}"
"""

_PROMPT_ANALISE_BASE = """Você é um "Analista de Frota Sênior", um especialista em Planejamento e Controle de Manutenção (PCM) com vasta experiência em carretas. Sua tarefa é realizar uma auditoria do histórico de manutenção de um veículo específico e gerar um relatório técnico, detalhado e perspicaz em português.

O histórico de visitas está no formato JSON abaixo.
Veículo ID: {frota_id}
Histórico de Visitas:
{historico}

Sua resposta DEVE ser formatada usando Markdown (títulos, negrito, listas). Baseie TODAS as suas conclusões estritamente nos dados fornecidos.
"""

_FOCO_ANALISE = {
    'FULL': """
### Análise Completa:
1. Resumo do perfil de manutenção: o veículo é mais reativo (muitas corretivas) ou proativo? Comente a frequência das visitas.
2. Padrões e recorrências: problemas ou trocas de peças que se repetem e os tipos de ordem mais comuns.
3. Tempos de parada: tempos médios de fila e de manutenção, gargalos e as visitas com maior parada.
4. Recomendações técnicas: de 2 a 3 recomendações claras e acionáveis.
5. Alertas e pontos de atenção para o gerente de frota.
""",
    'SUMMARY': """
### Foco da Análise: Resumo do Perfil de Manutenção
- Avalie o perfil geral do veículo (reativo vs. proativo).
- Comente sobre a frequência geral das visitas.
- Liste os tipos de ordem de serviço em ordem de frequência, indicando a quantidade de cada um.
""",
    'RECURRING_ISSUES': """
### Foco da Análise: Problemas Recorrentes
- Identifique problemas ou trocas de peças que se repetem.
- Especifique quais sistemas do veículo (freios, suspensão, elétrico) apresentam falhas constantes.
- Liste as peças mais substituídas para este veículo e a frequência.
""",
    'DOWNTIME': """
### Foco da Análise: Tempos de Parada (Downtime)
- Calcule e comente sobre os tempos médios de fila e de manutenção para este veículo.
- Compare os tempos deste veículo com os padrões da oficina, se possível.
- Destaque as visitas com os maiores tempos de parada e aponte a causa principal.
""",
}

_PROMPT_ASSISTENTE = """Você é o assistente do Carretômetro, um sistema de acompanhamento de visitas de carretas à oficina. Responda em português do Brasil, usando apenas os dados abaixo. Se a informação não estiver nos dados, diga que não encontrou.

Frotas cadastradas:
{frotas}

Visitas:
{visitas}

Conversa até agora:
{conversa}

Assistente:"""


# ── Fluxos ────────────────────────────────────────────────────────────────────

def gerar_sugestoes_proativas(cliente, frota_id, frotas, visitas):
    """Sugestões de manutenção para um veículo, com o histórico dele e de veículos similares"""
    try:
        frota = next((f for f in frotas if f.id == frota_id), None)
        if frota is None:
            raise ErroServicoIA(f"Veículo {frota_id} não encontrado.")
        dados = {
            'vehicleDetails': frota.para_dict(),
            'historicalVisits': [v.para_dict() for v in visitas if v.fleet_id == frota_id],
            'similarVehicleVisits': [v.para_dict() for v in visitas
                                     if v.equipment_type == frota.equipment_type
                                     and v.fleet_id != frota_id],
        }
        prompt = _PROMPT_SUGESTOES.format(
            frota_id=frota_id, dados=json.dumps(dados, ensure_ascii=False, indent=2))
        return cliente.gerar(prompt)
    except ErroServicoIA as e:
        logger.error(f"Erro ao gerar sugestões para {frota_id}: {e}")
        return ERRO_SUGESTOES


def gerar_relatorio(cliente, visitas):
    """
    Relatório analítico estruturado das visitas.

    Returns:
        dict com reportTitle, summary, keyMetrics, visitsByOrderType,
        visitsByWorkshop e insights; None em caso de falha.
    """
    try:
        texto = cliente.gerar(_PROMPT_RELATORIO.format(dados=visitas_para_json(visitas)))
        relatorio = _extrair_json(texto)
    except (ErroServicoIA, ValueError) as e:
        logger.error(f"Erro ao gerar relatório de IA: {e}")
        return None
    if not isinstance(relatorio, dict) or 'reportTitle' not in relatorio:
        logger.error("Relatório de IA em formato inesperado")
        return None
    relatorio.setdefault('insights', [])
    relatorio.setdefault('visitsByOrderType', [])
    relatorio.setdefault('visitsByWorkshop', [])
    return relatorio


def conversar_com_frota(cliente, frota_id, visitas, pergunta):
    historico = json.dumps([visita_para_ia(v) for v in visitas if v.fleet_id == frota_id],
                           ensure_ascii=False, indent=2)
    try:
        return cliente.gerar(_PROMPT_CONVERSA_FROTA.format(
            frota_id=frota_id, historico=historico, pergunta=pergunta))
    except ErroServicoIA as e:
        logger.error(f"Erro na conversa sobre a frota {frota_id}: {e}")
        return ERRO_CONVERSA


def analisar_frota(cliente, frota_id, visitas, tipo='FULL'):
    """Análise técnica do histórico de um veículo; tipo em TIPOS_ANALISE"""
    foco = _FOCO_ANALISE.get(tipo, _FOCO_ANALISE['FULL'])
    historico = visitas_para_json([v for v in visitas if v.fleet_id == frota_id])
    try:
        return cliente.gerar(
            _PROMPT_ANALISE_BASE.format(frota_id=frota_id, historico=historico) + foco)
    except ErroServicoIA as e:
        logger.error(f"Erro na análise ({tipo}) da frota {frota_id}: {e}")
        return ERRO_ANALISE


def conversar_com_assistente(cliente, mensagens, frotas, visitas):
    """
    Assistente geral sobre todas as frotas e visitas.

    mensagens: lista de dicts {'role': 'user'|'assistant', 'content': str}
    """
    conversa = "\n".join(
        f"{'Usuário' if m['role'] == 'user' else 'Assistente'}: {m['content']}"
        for m in mensagens
    )
    prompt = _PROMPT_ASSISTENTE.format(
        frotas=json.dumps([f.para_dict() for f in frotas], ensure_ascii=False),
        visitas=json.dumps([visita_para_ia(v) for v in visitas], ensure_ascii=False),
        conversa=conversa,
    )
    try:
        return cliente.gerar(prompt)
    except ErroServicoIA as e:
        logger.error(f"Erro no assistente: {e}")
        return ERRO_CONVERSA
