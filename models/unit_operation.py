"""
Unit operations: the structured parameters of a single protocol step.

Also holds the catalog of known operation types (mix, heat, ...) with
their default parameters and the fields shown in the properties panel.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union
import copy


Scalar = Union[str, int, float, bool, None]


@dataclass
class UnitOperation:
    """
    A single protocol step.

    Attributes:
        id: Operation identifier (may be empty until exported)
        type: Operation type key, e.g. "heat" (see OPERATION_DEFINITIONS)
        label: Human readable step name
        parameters: Scalar parameter map (time, temperature, ...)
        objects: Inventory items used by the step
        inputs: Named inputs
        outputs: Named outputs
        metadata: Free-form extras (equipment, assignedTo, projectId, notes)
    """
    id: str = ""
    type: str = "custom"
    label: str = ""
    parameters: Dict[str, Scalar] = field(default_factory=dict)
    objects: List[str] = field(default_factory=list)
    inputs: List[str] = field(default_factory=list)
    outputs: List[str] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "label": self.label,
            "parameters": dict(self.parameters),
            "objects": list(self.objects),
            "inputs": list(self.inputs),
            "outputs": list(self.outputs),
            "metadata": copy.deepcopy(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UnitOperation":
        # Ids are opaque strings; documents may carry them as numbers
        raw_id = data.get("id")
        return cls(
            id="" if raw_id is None else str(raw_id),
            type=data.get("type") or "custom",
            label=data.get("label") or "",
            parameters=dict(data.get("parameters") or {}),
            objects=list(data.get("objects") or []),
            inputs=list(data.get("inputs") or []),
            outputs=list(data.get("outputs") or []),
            metadata=copy.deepcopy(data.get("metadata") or {}),
        )

    def copy(self) -> "UnitOperation":
        return UnitOperation.from_dict(self.to_dict())

    def add_object(self, name: str) -> None:
        """Attach an inventory item, ignoring duplicates."""
        if name and name not in self.objects:
            self.objects.append(name)


# =============================================================================
# Operation catalog
# =============================================================================

@dataclass(frozen=True)
class ParameterField:
    """An editable parameter shown in the properties panel."""
    key: str
    label: str
    input_type: str = "text"  # text, number, textarea
    placeholder: str = ""


@dataclass(frozen=True)
class OperationDefinition:
    type: str
    label: str
    description: str
    color: str
    parameter_fields: tuple = ()
    default_parameters: Dict[str, Scalar] = field(default_factory=dict)


OPERATION_DEFINITIONS: List[OperationDefinition] = [
    OperationDefinition(
        type="mix",
        label="Mix / Agitate",
        description="Combine reagents or samples",
        color="#2563eb",
        parameter_fields=(
            ParameterField("time", "Duration (min)", "number", "5"),
            ParameterField("speed", "Speed / Mode", "text", "gentle / vortex"),
        ),
        default_parameters={"time": 5, "timeUnit": "min", "speed": "gentle"},
    ),
    OperationDefinition(
        type="heat",
        label="Heat",
        description="Increase temperature",
        color="#f97316",
        parameter_fields=(
            ParameterField("temperature", "Target Temp (°C)", "number", "95"),
            ParameterField("time", "Hold Time (min)", "number", "10"),
        ),
        default_parameters={"temperature": 95, "temperatureUnit": "°C", "time": 10, "timeUnit": "min"},
    ),
    OperationDefinition(
        type="cool",
        label="Cool / Chill",
        description="Reduce temperature",
        color="#0ea5e9",
        parameter_fields=(
            ParameterField("temperature", "Target Temp (°C)", "number", "4"),
            ParameterField("time", "Duration (min)", "number", "15"),
        ),
        default_parameters={"temperature": 4, "temperatureUnit": "°C", "time": 15, "timeUnit": "min"},
    ),
    OperationDefinition(
        type="incubate",
        label="Incubate",
        description="Hold at temperature",
        color="#ef4444",
        parameter_fields=(
            ParameterField("temperature", "Temperature (°C)", "number", "37"),
            ParameterField("time", "Duration (min)", "number", "30"),
            ParameterField("atmosphere", "Atmosphere", "text", "CO₂, dark, shaking..."),
        ),
        default_parameters={"temperature": 37, "temperatureUnit": "°C", "time": 30, "timeUnit": "min"},
    ),
    OperationDefinition(
        type="centrifuge",
        label="Centrifuge",
        description="Spin down samples",
        color="#a855f7",
        parameter_fields=(
            ParameterField("speed", "Speed (rpm or g)", "text", "5000 rpm"),
            ParameterField("time", "Duration (min)", "number", "5"),
            ParameterField("temperature", "Temperature (°C)", "number", "4"),
        ),
        default_parameters={
            "speed": "5000", "speedUnit": "rpm",
            "time": 5, "timeUnit": "min",
            "temperature": 4, "temperatureUnit": "°C",
        },
    ),
    OperationDefinition(
        type="pipette",
        label="Pipette / Transfer",
        description="Move liquids between vessels",
        color="#10b981",
        parameter_fields=(
            ParameterField("volume", "Volume", "number", "10"),
            ParameterField("volumeUnit", "Volume Unit", "text", "µL"),
            ParameterField("from", "From", "text", "Tube A"),
            ParameterField("to", "To", "text", "Tube B"),
        ),
        default_parameters={"volume": 10, "volumeUnit": "µL"},
    ),
    OperationDefinition(
        type="measure",
        label="Measurement",
        description="Collect a readout",
        color="#14b8a6",
        parameter_fields=(
            ParameterField("measurementType", "Measurement Type", "text", "Absorbance"),
            ParameterField("wavelength", "Wavelength / Filter", "text", "600 nm"),
            ParameterField("instrument", "Instrument Mode", "text", "Plate reader"),
        ),
        default_parameters={"measurementType": "Absorbance"},
    ),
    OperationDefinition(
        type="thermocycle",
        label="Thermocycle",
        description="PCR or cycling program",
        color="#d946ef",
        parameter_fields=(
            ParameterField("cycleCount", "# of Cycles", "number", "30"),
            ParameterField("denatureTemp", "Denature Temp (°C)", "number", "95"),
            ParameterField("denatureTime", "Denature Time (sec)", "number", "30"),
            ParameterField("annealTemp", "Anneal Temp (°C)", "number", "60"),
            ParameterField("annealTime", "Anneal Time (sec)", "number", "30"),
            ParameterField("extensionTemp", "Extension Temp (°C)", "number", "72"),
            ParameterField("extensionTime", "Extension Time (sec)", "number", "60"),
            ParameterField("holdTemp", "Final Hold Temp (°C)", "number", "4"),
        ),
        default_parameters={
            "cycleCount": 30,
            "denatureTemp": 95, "denatureTime": 30,
            "annealTemp": 60, "annealTime": 30,
            "extensionTemp": 72, "extensionTime": 60,
            "holdTemp": 4,
        },
    ),
    OperationDefinition(
        type="custom",
        label="Custom Step",
        description="Free-form operation",
        color="#475569",
        parameter_fields=(
            ParameterField("time", "Duration", "text", "15 min"),
            ParameterField("temperature", "Temperature", "text", "Room temp"),
            ParameterField("details", "Details", "textarea", "Add procedural notes or specifics"),
        ),
    ),
]

_DEFINITIONS_BY_TYPE = {d.type: d for d in OPERATION_DEFINITIONS}


def get_operation_definition(op_type: str) -> OperationDefinition:
    """Look up an operation type, falling back to the custom step."""
    return _DEFINITIONS_BY_TYPE.get(op_type, _DEFINITIONS_BY_TYPE["custom"])


def build_operation(op_type: str, name: Optional[str] = None, op_id: str = "") -> UnitOperation:
    """Create a UnitOperation pre-filled with the catalog defaults."""
    definition = get_operation_definition(op_type)
    return UnitOperation(
        id=op_id,
        type=op_type,
        label=name or definition.label,
        parameters=dict(definition.default_parameters),
    )


def operation_summary(operation: Optional[UnitOperation]) -> str:
    """Short display string such as "95°C · 10min · 30 cycles"."""
    if operation is None or not operation.parameters:
        return ""
    params = operation.parameters
    parts = []
    if params.get("temperature"):
        parts.append(f"{params['temperature']}{params.get('temperatureUnit') or '°C'}")
    if params.get("time"):
        parts.append(f"{params['time']}{params.get('timeUnit') or 'min'}")
    if params.get("cycleCount"):
        parts.append(f"{params['cycleCount']} cycles")
    return " · ".join(parts)
