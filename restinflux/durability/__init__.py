from restinflux.durability.influx_point import InfluxPoint, to_influx_point
from restinflux.durability.sink import InfluxSink, SinkError
