from typing import List, Literal, Optional

from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    PROJECT_NAME: str = "Open Dental Vapi Bridge"
    API_V1_STR: str = "/api"
    
    # Server
    PORT: int = 8000
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    ERROR_LOG_PATH: str = "logs/errors.log"
    
    # Vapi
    VAPI_BEARER_TOKEN: str = ""
    
    # Open Dental
    OPEN_DENTAL_API_URL: str = "https://api.opendental.com/api/v1"
    OPEN_DENTAL_DEVELOPER_KEY: str = ""
    OPEN_DENTAL_CUSTOMER_KEY: str = ""
    OPEN_DENTAL_TIMEOUT_SECONDS: float = 9.0
    
    # Practice defaults
    DEFAULT_PROV_NUM: Optional[int] = None
    DEFAULT_OP_NUM: Optional[int] = None
    DEFAULT_CLINIC_NUM: int = 0
    
    # Availability
    DEFAULT_DURATION_MINUTES: int = 60
    DEFAULT_INCREMENT_MINUTES: int = 10
    DEFAULT_RANGE_DAYS: int = 7
    SLOT_RESULT_CAP: int = 60
    # "degrade": a failed appointments read is treated as "nothing booked"
    # "fatal": a failed appointments read fails the whole availability request
    APPOINTMENTS_FAILURE_POLICY: Literal["degrade", "fatal"] = "degrade"
    NON_BLOCKING_STATUSES: List[str] = ["cancel", "broken"]

    class Config:
        env_file = ".env"
        case_sensitive = True

settings = Settings()
