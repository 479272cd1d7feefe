from distributor.queries.common import *
from distributor.queries.ledger import *
