'''
Block type registry. Blocks are identified by their name tag; the core model
keeps no per-block mutable state.
'''


class Block(object):
    name = None
    solid = True
    # Transparent blocks let light and vision through (water, leaves, glass).
    transparent = False
    # Blocks that ore veins may replace.
    ore_host = False


class Air(Block):
    name = 'air'
    solid = False
    transparent = True

class Bedrock(Block):
    name = 'bedrock'

class Stone(Block):
    name = 'stone'
    ore_host = True

class Cobblestone(Block):
    name = 'cobblestone'

class Dirt(Block):
    name = 'dirt'

class Grass(Block):
    name = 'grass'

class Sand(Block):
    name = 'sand'

class Gravel(Block):
    name = 'gravel'

class Water(Block):
    name = 'water'
    solid = False
    transparent = True

class Snow(Block):
    name = 'snow'

class CoalOre(Block):
    name = 'coal_ore'

class IronOre(Block):
    name = 'iron_ore'

class GoldOre(Block):
    name = 'gold_ore'

class DiamondOre(Block):
    name = 'diamond_ore'

class Wood(Block):
    name = 'wood'

class Planks(Block):
    name = 'planks'

class Leaves(Block):
    name = 'leaves'
    transparent = True

class Glass(Block):
    name = 'glass'
    transparent = True

class CraftingTable(Block):
    name = 'crafting_table'

class Farmland(Block):
    name = 'farmland'


class Wheat(Block):
    solid = False
    transparent = True
    stage = 0


def _crop_stages(base, count):
    stages = []
    for stage in range(count):
        stages.append(type(f"{base.__name__}Stage{stage}", (base,),
            {'name': f"wheat_stage_{stage}", 'stage': stage}))
    return stages


WHEAT_STAGES = _crop_stages(Wheat, 4)

BLOCKS = [
    Air,
    Bedrock,
    Stone,
    Cobblestone,
    Dirt,
    Grass,
    Sand,
    Gravel,
    Water,
    Snow,
    CoalOre,
    IronOre,
    GoldOre,
    DiamondOre,
    Wood,
    Planks,
    Leaves,
    Glass,
    CraftingTable,
    Farmland,
] + WHEAT_STAGES

BLOCK_TYPES = {b.name: b for b in BLOCKS}
BLOCK_ID = {}
for i, b in enumerate(BLOCKS):
    BLOCK_ID[b.name] = i

AIR = Air.name
BEDROCK = Bedrock.name
STONE = Stone.name
COBBLESTONE = Cobblestone.name
DIRT = Dirt.name
GRASS = Grass.name
SAND = Sand.name
GRAVEL = Gravel.name
WATER = Water.name
SNOW = Snow.name
COAL_ORE = CoalOre.name
IRON_ORE = IronOre.name
GOLD_ORE = GoldOre.name
DIAMOND_ORE = DiamondOre.name
WOOD = Wood.name
PLANKS = Planks.name
LEAVES = Leaves.name
GLASS = Glass.name
CRAFTING_TABLE = CraftingTable.name
FARMLAND = Farmland.name
WHEAT_RIPE = WHEAT_STAGES[-1].name

ORES = (COAL_ORE, IRON_ORE, GOLD_ORE, DIAMOND_ORE)


def validate(name):
    '''
    Return `name` if it is a registered block type, otherwise raise ValueError.
    '''
    if name not in BLOCK_TYPES:
        raise ValueError(f"unknown block type {name!r}")
    return name


def is_solid(name):
    return BLOCK_TYPES[name].solid
