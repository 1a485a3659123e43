# Services layer: orchestration over the shipping domain
