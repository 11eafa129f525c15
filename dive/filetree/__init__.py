"""Layer file trees: nodes, stacking, comparison and efficiency scoring."""