"""
core/transicoes.py
Máquina de estados das visitas.

aplicar_transicao() é uma função pura: recebe a visita atual, o status
pedido e os valores do formulário e devolve uma nova visita. O registro
da atividade é responsabilidade de quem chama.
"""

from dataclasses import dataclass
from typing import Any, Optional

from core.modelos import (
    CalibrationData, ServiceLog, Visit, safe_int, safe_texto, safe_timestamp
)
from data.config import (
    CONFIGURACOES, EM_FILA, EM_MANUTENCAO, AGUARDANDO_PECA, MOVIMENTACAO, FINALIZADO
)


class ErroValidacao(ValueError):
    """Erro corrigível pelo usuário; a transição não é aplicada."""


@dataclass
class ValoresFormulario:
    """Valores do formulário de edição de visita."""
    workshop: Optional[str] = None
    order_type_for_service: Optional[str] = None
    box_number: Optional[str] = None
    box_entry_timestamp: Any = None
    finish_timestamp: Any = None
    service_performed: Optional[str] = None
    part_used: Optional[str] = None
    part_quantity: Any = None
    calibration_data: Any = None
    image_url: Optional[str] = None


def valores_iniciais(visita: Visit) -> ValoresFormulario:
    """Valores padrão do formulário para a tarefa atual da visita."""
    return ValoresFormulario(
        workshop=visita.workshop,
        order_type_for_service=visita.order_type[0] if not visita.multiplas_ordens else None,
        box_number=visita.box_number,
        box_entry_timestamp=visita.box_entry_timestamp,
        finish_timestamp=visita.finish_timestamp,
        service_performed=visita.service_performed,
        part_used=visita.part_used,
        part_quantity=visita.part_quantity,
        calibration_data=visita.calibration_data,
        image_url=visita.image_url,
    )


def _piso(*timestamps):
    """Maior timestamp definido; novos timestamps não podem ser anteriores a ele."""
    definidos = [t for t in timestamps if t is not None]
    return max(definidos) if definidos else None


def _nao_antes(valor, piso):
    if piso is not None and valor < piso:
        return piso
    return valor


def _validar(visita: Visit, novo_status, valores: ValoresFormulario):
    if novo_status not in CONFIGURACOES['status']:
        raise ErroValidacao(f"Status inválido: {novo_status}")

    if visita.finalizada and novo_status != FINALIZADO:
        raise ErroValidacao(f"A visita {visita.id} já foi finalizada e não pode mudar de status.")

    tipo = valores.order_type_for_service
    if visita.multiplas_ordens and novo_status != EM_FILA and not tipo:
        raise ErroValidacao("Por favor, selecione qual tipo de ordem está sendo executada.")
    if tipo and tipo not in visita.order_type:
        raise ErroValidacao(f"O tipo de ordem {tipo} não pertence à visita {visita.id}.")

    if novo_status == MOVIMENTACAO and not visita.multiplas_ordens:
        raise ErroValidacao("Movimentação só é permitida em visitas com mais de um tipo de ordem.")


def aplicar_transicao(visita: Visit, novo_status: str, valores: ValoresFormulario, agora: int) -> Visit:
    """
    Aplica a mudança de status pedida e devolve a nova visita.

    Timestamps de status seguem a regra "primeira escrita vence": só são
    gravados quando ainda não existem. Movimentação fecha a tarefa atual
    no serviceHistory e reinicia o cronômetro de manutenção para a próxima.

    Raises:
        ErroValidacao: seleção de tipo de ordem ausente, visita finalizada,
            status inválido ou Movimentação em visita de ordem única.
    """
    _validar(visita, novo_status, valores)
    if novo_status == MOVIMENTACAO:
        return _rolar_ordem(visita, valores, agora)
    return _atualizar(visita, novo_status, valores, agora)


def _rolar_ordem(visita: Visit, valores: ValoresFormulario, agora: int) -> Visit:
    concluida = valores.order_type_for_service
    inicio = visita.maintenance_start_timestamp or visita.arrival_timestamp
    fim = _nao_antes(agora, inicio)

    registro = ServiceLog(
        order_type=concluida,
        start_timestamp=inicio,
        finish_timestamp=fim,
        service_performed=safe_texto(valores.service_performed),
        part_used=safe_texto(valores.part_used),
        part_quantity=safe_int(valores.part_quantity),
        calibration_data=CalibrationData.de_dict(valores.calibration_data),
        workshop=safe_texto(valores.workshop),
        box_number=safe_texto(valores.box_number),
    )

    # Consome apenas a primeira ocorrência do tipo concluído
    restantes = list(visita.order_type)
    restantes.remove(concluida)

    return visita.alterar(
        service_history=visita.service_history + (registro,),
        service_performed=None,
        part_used=None,
        part_quantity=None,
        calibration_data=None,
        box_number=None,
        box_entry_timestamp=None,
        maintenance_start_timestamp=fim,
        status=EM_MANUTENCAO,
        order_type=tuple(restantes),
        image_url=safe_texto(valores.image_url) or visita.image_url,
    )


def _atualizar(visita: Visit, novo_status, valores: ValoresFormulario, agora: int) -> Visit:
    box = safe_texto(valores.box_number)
    entrada_box = safe_timestamp(valores.box_entry_timestamp)
    if entrada_box is not None:
        entrada_box = _nao_antes(entrada_box, visita.arrival_timestamp)
    else:
        entrada_box = visita.box_entry_timestamp
    if box and entrada_box is None:
        entrada_box = _nao_antes(agora, visita.arrival_timestamp)

    inicio_manutencao = visita.maintenance_start_timestamp
    aguardando_peca = visita.awaiting_part_timestamp
    fim = visita.finish_timestamp

    if novo_status != visita.status:
        if novo_status == EM_MANUTENCAO and inicio_manutencao is None:
            inicio_manutencao = _nao_antes(agora, visita.arrival_timestamp)
        if novo_status == AGUARDANDO_PECA and aguardando_peca is None:
            aguardando_peca = _nao_antes(
                agora, _piso(visita.arrival_timestamp, inicio_manutencao))
            # Saída da fila direto para peça também abre a manutenção
            if inicio_manutencao is None:
                inicio_manutencao = aguardando_peca

    if novo_status == FINALIZADO and fim is None:
        manual = safe_timestamp(valores.finish_timestamp)
        fim = _nao_antes(
            manual if manual is not None else agora,
            _piso(visita.arrival_timestamp, inicio_manutencao, aguardando_peca))

    return visita.alterar(
        workshop=safe_texto(valores.workshop),
        status=novo_status,
        box_number=box,
        box_entry_timestamp=entrada_box,
        maintenance_start_timestamp=inicio_manutencao,
        awaiting_part_timestamp=aguardando_peca,
        finish_timestamp=fim,
        calibration_data=CalibrationData.de_dict(valores.calibration_data),
        service_performed=safe_texto(valores.service_performed),
        part_used=safe_texto(valores.part_used),
        part_quantity=safe_int(valores.part_quantity),
        image_url=safe_texto(valores.image_url) or visita.image_url,
    )


def descrever_transicao(antes: Visit, depois: Visit) -> str:
    """Texto do registro de atividade para uma transição aplicada."""
    if len(depois.service_history) > len(antes.service_history):
        concluida = depois.service_history[-1].order_type
        return (f"Registrou a conclusão de {concluida} na visita {depois.id} "
                f"(Movimentação); próxima tarefa: {', '.join(depois.order_type)}")
    return f"Atualizou a visita {depois.id} para o status {depois.status}"


def visita_finalizada_com_pendencias(visita: Visit) -> bool:
    """
    Visita finalizada que ainda carrega mais de um tipo de ordem.

    O fluxo permite finalizar sem passar por Movimentação em cada tarefa;
    o estado é sinalizado, não bloqueado.
    """
    return visita.finalizada and visita.multiplas_ordens
