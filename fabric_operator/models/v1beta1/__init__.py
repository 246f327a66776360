from .ca import *
from .common import *
from .console import *
from .orderer import *
from .peer import *
