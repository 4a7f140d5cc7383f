"""
core/modelos.py
Modelo de dados das visitas e frotas.

Os registros são imutáveis: qualquer alteração produz um novo valor via
dataclasses.replace. A serialização preserva os nomes de campo camelCase
do armazenamento (fleetId, orderType, serviceHistory...), que também são
o contrato de entrada dos fluxos de IA.
"""

import math
import time
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Optional, Tuple

from data.config import CONFIGURACOES, FINALIZADO


# ── Conversão segura de tipos ─────────────────────────────────────────────────

def safe_float(v) -> Optional[float]:
    """Número finito ou None; vírgula decimal aceita, lixo, NaN e infinito viram None."""
    if v is None or isinstance(v, bool):
        return None
    if isinstance(v, (int, float)):
        try:
            n = float(v)
        except OverflowError:
            return None
        return n if math.isfinite(n) else None
    s = str(v).strip().replace(",", ".")
    if not s:
        return None
    try:
        n = float(s)
    except ValueError:
        return None
    return n if math.isfinite(n) else None


def safe_int(v) -> Optional[int]:
    n = safe_float(v)
    return int(n) if n is not None else None


def safe_timestamp(v) -> Optional[int]:
    """Timestamp em milissegundos (int) ou None; aceita datetime local."""
    if isinstance(v, datetime):
        return int(v.timestamp() * 1000)
    return safe_int(v)


def safe_texto(v) -> Optional[str]:
    if v is None:
        return None
    s = str(v).strip()
    return s or None


def normalizar_tipos_ordem(valor) -> Tuple[str, ...]:
    """Aceita str ou sequência e devolve sempre uma tupla ordenada como recebida."""
    if valor is None:
        return ()
    if isinstance(valor, str):
        return (valor,) if valor.strip() else ()
    return tuple(str(v) for v in valor if v is not None and str(v).strip())


# ── Calibragem ────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class TirePressures:
    axle1_left: Optional[float] = None
    axle1_right: Optional[float] = None
    axle2_left: Optional[float] = None
    axle2_right: Optional[float] = None

    _CAMPOS = (
        ('axle1_left', 'axle1Left'),
        ('axle1_right', 'axle1Right'),
        ('axle2_left', 'axle2Left'),
        ('axle2_right', 'axle2Right'),
    )

    @classmethod
    def de_dict(cls, dados):
        if not dados:
            return None
        pressoes = cls(**{attr: safe_float(dados.get(chave)) for attr, chave in cls._CAMPOS})
        return None if pressoes.vazio else pressoes

    @property
    def vazio(self):
        return all(getattr(self, attr) is None for attr, _ in self._CAMPOS)

    def para_dict(self):
        return {chave: getattr(self, attr) for attr, chave in self._CAMPOS
                if getattr(self, attr) is not None}


@dataclass(frozen=True)
class CalibrationData:
    trailer1: Optional[TirePressures] = None
    trailer2: Optional[TirePressures] = None
    trailer3: Optional[TirePressures] = None

    @classmethod
    def de_dict(cls, dados):
        if isinstance(dados, CalibrationData):
            return None if dados.vazio else dados
        if not dados:
            return None
        calibragem = cls(
            trailer1=TirePressures.de_dict(dados.get('trailer1')),
            trailer2=TirePressures.de_dict(dados.get('trailer2')),
            trailer3=TirePressures.de_dict(dados.get('trailer3')),
        )
        return None if calibragem.vazio else calibragem

    @property
    def vazio(self):
        return self.trailer1 is None and self.trailer2 is None and self.trailer3 is None

    def para_dict(self):
        return {nome: getattr(self, nome).para_dict()
                for nome in ('trailer1', 'trailer2', 'trailer3')
                if getattr(self, nome) is not None}


# ── Histórico de serviços ─────────────────────────────────────────────────────

@dataclass(frozen=True)
class ServiceLog:
    """Registro fechado de um tipo de ordem executado dentro de uma visita."""
    order_type: str
    start_timestamp: int
    finish_timestamp: int
    service_performed: Optional[str] = None
    part_used: Optional[str] = None
    part_quantity: Optional[int] = None
    calibration_data: Optional[CalibrationData] = None
    workshop: Optional[str] = None
    box_number: Optional[str] = None

    @classmethod
    def de_dict(cls, dados):
        return cls(
            order_type=dados['orderType'],
            start_timestamp=safe_timestamp(dados.get('startTimestamp')) or 0,
            finish_timestamp=safe_timestamp(dados.get('finishTimestamp')) or 0,
            service_performed=safe_texto(dados.get('servicePerformed')),
            part_used=safe_texto(dados.get('partUsed')),
            part_quantity=safe_int(dados.get('partQuantity')),
            calibration_data=CalibrationData.de_dict(dados.get('calibrationData')),
            workshop=safe_texto(dados.get('workshop')),
            box_number=safe_texto(dados.get('boxNumber')),
        )

    def para_dict(self):
        dados = {
            'orderType': self.order_type,
            'servicePerformed': self.service_performed,
            'partUsed': self.part_used,
            'partQuantity': self.part_quantity,
            'calibrationData': self.calibration_data.para_dict() if self.calibration_data else None,
            'startTimestamp': self.start_timestamp,
            'finishTimestamp': self.finish_timestamp,
            'workshop': self.workshop,
            'boxNumber': self.box_number,
        }
        return {k: v for k, v in dados.items() if v is not None}

    @property
    def duracao_segundos(self):
        if self.finish_timestamp < self.start_timestamp:
            return 0
        return (self.finish_timestamp - self.start_timestamp) / 1000


# ── Visita ────────────────────────────────────────────────────────────────────

# atributo python -> chave no armazenamento
_CAMPOS_VISITA = (
    ('id', 'id'),
    ('fleet_id', 'fleetId'),
    ('plate', 'plate'),
    ('equipment_type', 'equipmentType'),
    ('order_type', 'orderType'),
    ('status', 'status'),
    ('arrival_timestamp', 'arrivalTimestamp'),
    ('maintenance_start_timestamp', 'maintenanceStartTimestamp'),
    ('awaiting_part_timestamp', 'awaitingPartTimestamp'),
    ('finish_timestamp', 'finishTimestamp'),
    ('box_number', 'boxNumber'),
    ('box_entry_timestamp', 'boxEntryTimestamp'),
    ('image_url', 'imageUrl'),
    ('notes', 'notes'),
    ('service_performed', 'servicePerformed'),
    ('part_used', 'partUsed'),
    ('part_quantity', 'partQuantity'),
    ('workshop', 'workshop'),
    ('created_by', 'createdBy'),
    ('created_at', 'createdAt'),
    ('updated_by', 'updatedBy'),
    ('updated_at', 'updatedAt'),
    ('calibration_data', 'calibrationData'),
    ('service_history', 'serviceHistory'),
)

CHAVES_VISITA = {attr: chave for attr, chave in _CAMPOS_VISITA}
ATRIBUTOS_VISITA = {chave: attr for attr, chave in _CAMPOS_VISITA}

_TIMESTAMPS = {
    'arrival_timestamp', 'maintenance_start_timestamp', 'awaiting_part_timestamp',
    'finish_timestamp', 'box_entry_timestamp', 'created_at', 'updated_at',
}


@dataclass(frozen=True)
class Visit:
    id: str
    fleet_id: str
    plate: str
    equipment_type: str
    order_type: Tuple[str, ...]
    status: str
    arrival_timestamp: int
    maintenance_start_timestamp: Optional[int] = None
    awaiting_part_timestamp: Optional[int] = None
    finish_timestamp: Optional[int] = None
    box_number: Optional[str] = None
    box_entry_timestamp: Optional[int] = None
    image_url: Optional[str] = None
    notes: Optional[str] = None
    service_performed: Optional[str] = None
    part_used: Optional[str] = None
    part_quantity: Optional[int] = None
    workshop: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Optional[int] = None
    updated_by: Optional[str] = None
    updated_at: Optional[int] = None
    calibration_data: Optional[CalibrationData] = None
    service_history: Tuple[ServiceLog, ...] = field(default_factory=tuple)

    def __post_init__(self):
        tipos = normalizar_tipos_ordem(self.order_type)
        if not tipos:
            raise ValueError(f"Visita {self.id}: orderType não pode ser vazio")
        object.__setattr__(self, 'order_type', tipos)
        object.__setattr__(self, 'service_history', tuple(self.service_history or ()))

    @classmethod
    def de_dict(cls, dados):
        """Constrói a visita a partir do registro armazenado, normalizando orderType."""
        if not isinstance(dados, dict):
            raise TypeError(f"Registro de visita inválido: {dados!r}")
        valores = {}
        for chave, valor in dados.items():
            attr = ATRIBUTOS_VISITA.get(chave)
            if attr is None:
                continue
            if attr in _TIMESTAMPS:
                valor = safe_timestamp(valor)
            elif attr == 'part_quantity':
                valor = safe_int(valor)
            elif attr == 'calibration_data':
                valor = CalibrationData.de_dict(valor)
            elif attr == 'service_history':
                valor = tuple(ServiceLog.de_dict(log) for log in (valor or []))
            valores[attr] = valor
        if valores.get('arrival_timestamp') is None:
            raise ValueError(f"Visita {dados.get('id')}: arrivalTimestamp obrigatório")
        return cls(**valores)

    def para_dict(self):
        dados = {}
        for attr, chave in _CAMPOS_VISITA:
            valor = getattr(self, attr)
            if attr == 'order_type':
                valor = list(valor)
            elif attr == 'service_history':
                valor = [log.para_dict() for log in valor]
            elif attr == 'calibration_data' and valor is not None:
                valor = valor.para_dict()
            if valor is not None:
                dados[chave] = valor
        return dados

    def alterar(self, **mudancas):
        return replace(self, **mudancas)

    @property
    def multiplas_ordens(self):
        return len(self.order_type) > 1

    @property
    def finalizada(self):
        return self.status == FINALIZADO


@dataclass(frozen=True)
class Fleet:
    id: str
    plate: str
    equipment_type: str
    carrier: str

    @classmethod
    def de_dict(cls, dados):
        return cls(
            id=dados['id'],
            plate=dados.get('plate', ''),
            equipment_type=dados.get('equipmentType') or CONFIGURACOES['equipamento_padrao'],
            carrier=dados.get('carrier', ''),
        )

    def para_dict(self):
        return {
            'id': self.id,
            'plate': self.plate,
            'equipmentType': self.equipment_type,
            'carrier': self.carrier,
        }



def agora_ms() -> int:
    return int(time.time() * 1000)
