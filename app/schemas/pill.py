from pydantic import BaseModel

SHAPES = [
    "Round", "Oval", "Oblong", "Capsule", "Diamond", "Heart", "Hexagon",
    "Octagon", "Pentagon", "Rectangle", "Square", "Triangle", "Other",
]
COLOURS = [
    "White", "Off-White", "Yellow", "Orange", "Pink", "Red", "Purple", "Blue",
    "Green", "Brown", "Tan", "Gray", "Black", "Multi-colored",
]
DRUG_CLASSES = [
    "Analgesic", "Antibiotic", "Antidepressant", "Antihistamine",
    "Anti-inflammatory", "Antiviral", "Blood Pressure", "Cholesterol",
    "Diabetes", "Gastrointestinal", "Muscle Relaxant", "Sleep Aid",
    "Vitamin/Supplement", "Other",
]


class PillResponse(BaseModel):
    id: str
    generic_name: str
    drug_class: str | None = None
    colour: str | None = None
    size: str | None = None
    shape: str | None = None
    dosage: str | None = None
    uses: str | None = None
    description: str | None = None
    warnings: str | None = None
    has_image: bool = False
    created_at: str

    model_config = {"from_attributes": True}

    @classmethod
    def from_model(cls, pill) -> "PillResponse":
        data = cls.model_validate(pill)
        data.has_image = bool(pill.image_path)
        return data
