from distributor.store.common import *
from distributor.store.local import *
from distributor.store.pinata import *
