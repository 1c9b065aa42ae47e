import enum


class ExamType(str, enum.Enum):
    CCNA = "CCNA"
    CCNP_ENCOR = "CCNP_ENCOR"
    CCNP_ENARSI = "CCNP_ENARSI"
    CCIE = "CCIE"


class Category(str, enum.Enum):
    NETWORK_FUNDAMENTALS = "NETWORK_FUNDAMENTALS"
    SWITCHING = "SWITCHING"
    ROUTING = "ROUTING"
    OSPF = "OSPF"
    BGP = "BGP"
    IP_SERVICES = "IP_SERVICES"
    SECURITY = "SECURITY"
    AUTOMATION = "AUTOMATION"


class Difficulty(str, enum.Enum):
    BEGINNER = "BEGINNER"
    INTERMEDIATE = "INTERMEDIATE"
    ADVANCED = "ADVANCED"
    MIXED = "MIXED"
