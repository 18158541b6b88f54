# Services package init
"""
MathDispatch — Services Layer
==============================

What:  Everything between the editor-facing ServiceProvider and the outside
       world (HTTP, typesetting).

Service Inventory:
    - ServiceProvider: initialize / invoke / ainvoke, owns registry and events
    - ServicePathRegistry: service name → URI, per server technology
    - LocalConverter: MathML → SVG envelope through a TypesettingEngine
    - HttpTransport (abstract) / HttpxTransport: blocking and async HTTP
    - TypesettingEngine (abstract) / ZiamathEngine: MathML renderer
"""
