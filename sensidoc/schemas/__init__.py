# Schemas package (re-export feature modules for stable imports)
from .appointments.appointment import *
from .ai.advisory import *
from .common.common import *
