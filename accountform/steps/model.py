"""Step definitions and navigation state of the account form."""

from dataclasses import asdict, dataclass


@dataclass(frozen=True)
class StepDefinition:
    id: int
    title: str
    required_fields: frozenset[str]


@dataclass
class FormSessionState:
    current_step_id: int = 1
    highest_completed_step_id: int = 0
    is_transitioning: bool = False
    step_submit_attempted: bool = False

    def to_dict(self) -> dict:
        return asdict(self)


ACCOUNT_FORM_STEPS: tuple[StepDefinition, ...] = (
    StepDefinition(
        id=1,
        title="Votre Entreprise",
        required_fields=frozenset(
            {"companyName", "siren", "siret", "nafApe", "tvaIntracom"}
        ),
    ),
    StepDefinition(
        id=2,
        title="Contact",
        required_fields=frozenset(
            {
                "address",
                "postalCode",
                "city",
                "responsableAchatEmail",
                "responsableAchatPhone",
                "serviceComptaEmail",
                "serviceComptaPhone",
                "deliveryAddress",
                "deliveryPostalCode",
                "deliveryCity",
            }
        ),
    ),
    StepDefinition(
        id=3,
        title="Validation",
        required_fields=frozenset({"legalDocument", "signature", "cgvAccepted"}),
    ),
)


def all_required_fields(steps: tuple[StepDefinition, ...]) -> frozenset[str]:
    fields: set[str] = set()
    for step in steps:
        fields |= step.required_fields
    return frozenset(fields)
