"""Label vocabulary for the content classifier (ImageNet subset)"""

CONTENT_LABELS = (
    "seashore, coast, seacoast",
    "lakeside, lakeshore",
    "alp",
    "valley, vale",
    "cliff, drop, drop-off",
    "volcano",
    "sandbar, sand bar",
    "coral reef",
    "promontory, headland",
    "church, church building",
    "palace",
    "castle",
    "library",
    "restaurant, eating house",
    "street sign",
    "traffic light, traffic signal",
    "cab, hack, taxi",
    "streetcar, tram",
    "golden retriever",
    "tabby, tabby cat",
    "daisy",
    "pizza, pizza pie",
    "espresso",
    "fountain",
)
