from services.tools.cluster import ClusterClient, KubectlClusterClient, MockClusterClient
from services.tools.event_broker import EventBrokerClient
from services.tools.git_checkout import GitCheckout
from services.tools.jmeter import JMeterExecutor, ScriptedJMeterExecutor
from services.tools.synthetic_data import deployment_finished_event, jmeter_output, truncated_output

__all__ = [
    "ClusterClient",
    "EventBrokerClient",
    "GitCheckout",
    "JMeterExecutor",
    "KubectlClusterClient",
    "MockClusterClient",
    "ScriptedJMeterExecutor",
    "deployment_finished_event",
    "jmeter_output",
    "truncated_output",
]
