"""
Istio action webhook.

Fulfillment endpoint for an assistant agent: turns structured intents
(allowAccess, denyAccess, getTopology, setRoute, getRoute) into calls
against the Istio control plane and answers with a spoken sentence.

- Mixer holds the access-control rules
- Pilot serves the route rules
- Servicegraph serves the topology snapshot
"""
